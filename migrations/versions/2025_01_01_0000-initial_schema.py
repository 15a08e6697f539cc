"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create initial database schema:
    - redirects: redirect key -> target URL mappings
    - visits: raw visit events, one row per redirect click
    - daily_visit_summaries: per-day, per-dimension visit counts
    """
    bind = op.get_bind()
    inspector = inspect(bind)
    existing_tables = inspector.get_table_names()

    if 'redirects' not in existing_tables:
        op.create_table(
            'redirects',
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('key', sa.String(length=100), nullable=False),
            sa.Column('url', sa.Text(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_redirects_key', 'redirects', ['key'], unique=True)
        op.create_index('ix_redirects_created_at', 'redirects', ['created_at'])

    if 'visits' not in existing_tables:
        # Foreign key declared inline so SQLite gets it too
        op.create_table(
            'visits',
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('redirect_id', sa.Integer(), nullable=False),
            sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
            sa.Column('ip', sa.String(length=45), nullable=True),
            sa.Column('user_agent', sa.String(length=500), nullable=True),
            sa.Column('referer', sa.Text(), nullable=True),
            sa.Column('country', sa.String(length=16), nullable=True),
            sa.ForeignKeyConstraint(
                ['redirect_id'],
                ['redirects.id'],
                name='fk_visits_redirect_id',
                ondelete='CASCADE'
            ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_visits_redirect_id', 'visits', ['redirect_id'])
        op.create_index('ix_visits_timestamp', 'visits', ['timestamp'])
        op.create_index('ix_visits_redirect_id_timestamp', 'visits', ['redirect_id', 'timestamp'])

    if 'daily_visit_summaries' not in existing_tables:
        op.create_table(
            'daily_visit_summaries',
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('date', sa.Date(), nullable=False),
            sa.Column('redirect_id', sa.Integer(), nullable=False),
            sa.Column('country', sa.String(length=16), nullable=False),
            sa.Column('referer_domain', sa.String(length=255), nullable=False),
            sa.Column('browser', sa.String(length=64), nullable=False),
            sa.Column('os', sa.String(length=64), nullable=False),
            sa.Column('visit_count', sa.Integer(), nullable=False, server_default='0'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint(
                'date', 'redirect_id', 'country', 'referer_domain', 'browser', 'os',
                name='uq_daily_visit_summaries_key'
            ),
            sa.CheckConstraint('visit_count >= 0', name='ck_daily_visit_summaries_visit_count')
        )
        op.create_index('ix_daily_visit_summaries_date', 'daily_visit_summaries', ['date'])
        op.create_index('ix_daily_visit_summaries_redirect_id', 'daily_visit_summaries', ['redirect_id'])


def downgrade() -> None:
    """Drop all tables and indexes."""
    bind = op.get_bind()
    existing_tables = inspect(bind).get_table_names()

    if 'daily_visit_summaries' in existing_tables:
        op.drop_index('ix_daily_visit_summaries_redirect_id', table_name='daily_visit_summaries')
        op.drop_index('ix_daily_visit_summaries_date', table_name='daily_visit_summaries')
        op.drop_table('daily_visit_summaries')

    if 'visits' in existing_tables:
        op.drop_index('ix_visits_redirect_id_timestamp', table_name='visits')
        op.drop_index('ix_visits_timestamp', table_name='visits')
        op.drop_index('ix_visits_redirect_id', table_name='visits')
        op.drop_table('visits')

    if 'redirects' in existing_tables:
        op.drop_index('ix_redirects_created_at', table_name='redirects')
        op.drop_index('ix_redirects_key', table_name='redirects')
        op.drop_table('redirects')
