"""
API Request and Response Schemas

This module defines the Pydantic models for the admin analytics API.
Each statistics shape has its own response model; list payloads are wrapped
under the shape's name (e.g. {"topReferers": [...]}) to match what the admin
dashboard consumes.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StatsSummaryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    days: int
    total_visits: int = Field(..., description="Visits inside the window")
    unique_redirects: int = Field(..., description="Redirects with at least one visit inside the window")
    total_redirects: int = Field(..., description="All-time number of redirect mappings")


class TimeSeriesPointModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: str = Field(..., description="UTC day as YYYY-MM-DD")
    count: int


class TopUrlModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    redirect_id: int
    key: str
    url: str
    count: int


class TopCountryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    country: str
    count: int


class TopRefererModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    domain: str
    count: int


class TopUserAgentModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    browser: str
    os: str
    count: int


class RedirectStatsModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    key: str
    url: str
    visit_count: int
    last_visit: Optional[datetime] = None


class VisitRecordModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    redirect_id: int
    timestamp: datetime
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None
    country: Optional[str] = None


class SummaryResponse(BaseModel):
    summary: StatsSummaryModel


class TimeSeriesResponse(BaseModel):
    timeseries: list[TimeSeriesPointModel]


class TopUrlsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    top_urls: list[TopUrlModel] = Field(..., alias="topUrls")


class TopCountriesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    top_countries: list[TopCountryModel] = Field(..., alias="topCountries")


class TopReferersResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    top_referers: list[TopRefererModel] = Field(..., alias="topReferers")


class TopUserAgentsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    top_user_agents: list[TopUserAgentModel] = Field(..., alias="topUserAgents")


class RedirectStatsResponse(BaseModel):
    redirects: list[RedirectStatsModel]


class RedirectVisitsResponse(BaseModel):
    visits: list[VisitRecordModel]


class AggregateRequest(BaseModel):
    """Request model for a manual rollup trigger."""
    date: str = Field(..., description="UTC day to aggregate, YYYY-MM-DD", examples=["2024-01-01"])


class AggregateResponse(BaseModel):
    """The rollup runs in the background; only acceptance is reported."""
    success: bool
    date: str
    message: str
