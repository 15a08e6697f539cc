"""
Database Models for the Link Analytics Service

This module defines the SQLModel database schemas for:
- Redirect: the short-key -> target URL mapping (owned by the admin CRUD side)
- VisitEvent: one append-only row per redirect click (raw event store)
- DailyVisitSummary: per-day, per-dimension visit counts (summary store)

Design Decisions:
- Raw visits and summaries live in separate tables so the rollup can be
  re-run for a day without touching the raw log
- The summary table's unique constraint spans the full dimension tuple;
  the rollup's merge-upsert targets exactly this constraint
- Timestamps are stored as naive UTC datetimes
"""

import datetime as dt
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlmodel import Column, Field, Index, SQLModel

from app.core.validators import utc_now

# Column order of the summary uniqueness key
SUMMARY_KEY_COLUMNS = ("date", "redirect_id", "country", "referer_domain", "browser", "os")


class Redirect(SQLModel, table=True):
    """
    Redirect mapping table.

    Only read by the analytics side: counted for the stats summary and
    joined for key/url display in the top-URL breakdown.
    """
    __tablename__ = "redirects"

    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(
        sa_column=Column(String(100), nullable=False, unique=True, index=True),
        max_length=100
    )
    url: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class VisitEvent(SQLModel, table=True):
    """
    Raw visit event, one row per redirect click.

    Written by the redirect handler, never updated. Rows are removed only
    together with their parent redirect (ON DELETE CASCADE).

    Raw header values are kept verbatim; classification into dimensions
    happens at rollup/query time so the classifier can be improved and
    older days re-aggregated.
    """
    __tablename__ = "visits"
    __table_args__ = (
        Index("ix_visits_redirect_id_timestamp", "redirect_id", "timestamp"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    redirect_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("redirects.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    ip: Optional[str] = Field(
        default=None,
        sa_column=Column(String(45), nullable=True)  # IPv6 max length
    )
    user_agent: Optional[str] = Field(
        default=None,
        sa_column=Column(String(500), nullable=True)
    )
    referer: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True)
    )
    country: Optional[str] = Field(
        default=None,
        sa_column=Column(String(16), nullable=True)
    )


class DailyVisitSummary(SQLModel, table=True):
    """
    Daily rollup of visits.

    One row per distinct (date, redirect_id, country, referer_domain,
    browser, os) tuple. visit_count holds how many raw visits of that day
    fell into the tuple.

    Invariant after a rollup of day D:
        SUM(visit_count WHERE date = D) == COUNT(visits on D)
    """
    __tablename__ = "daily_visit_summaries"
    __table_args__ = (
        UniqueConstraint(*SUMMARY_KEY_COLUMNS, name="uq_daily_visit_summaries_key"),
        CheckConstraint("visit_count >= 0", name="ck_daily_visit_summaries_visit_count"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    date: dt.date = Field(sa_column=Column(Date, nullable=False, index=True))
    redirect_id: int = Field(sa_column=Column(Integer, nullable=False, index=True))
    country: str = Field(sa_column=Column(String(16), nullable=False))
    referer_domain: str = Field(sa_column=Column(String(255), nullable=False))
    browser: str = Field(sa_column=Column(String(64), nullable=False))
    os: str = Field(sa_column=Column(String(64), nullable=False))
    visit_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
