"""
FastAPI Endpoints for the Admin Analytics API

This module defines the REST endpoints with minimal logic.
Endpoints only handle:
- Query/body validation (FastAPI + Pydantic)
- Rate limiting
- Mapping service errors to HTTP responses
- Delegating to the service layer

Authentication is enforced in front of this router and is not handled here.

Error mapping:
- StoreUnavailableError -> 503
- RedirectNotFoundError -> 404
- InvalidDateError -> 400
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas import (
    AggregateRequest,
    AggregateResponse,
    RedirectStatsModel,
    RedirectStatsResponse,
    RedirectVisitsResponse,
    StatsSummaryModel,
    SummaryResponse,
    TimeSeriesPointModel,
    TimeSeriesResponse,
    TopCountriesResponse,
    TopCountryModel,
    TopRefererModel,
    TopReferersResponse,
    TopUrlModel,
    TopUrlsResponse,
    TopUserAgentModel,
    TopUserAgentsResponse,
    VisitRecordModel,
)
from app.core.exceptions import InvalidDateError, RedirectNotFoundError, StoreUnavailableError
from app.core.rate_limit import RATE_LIMITS, limiter
from app.core.setting import settings
from app.core.validators import parse_day
from app.db.session import get_session
from app.services.background_tasks import run_rollup_background
from app.services.stats_service import StatsService

router = APIRouter(prefix="/admin/api")

LIMIT_QUERY = Query(settings.STATS_DEFAULT_LIMIT, ge=1, le=settings.STATS_MAX_LIMIT)


def days_query(default: int):
    return Query(default, ge=1, le=settings.STATS_MAX_DAYS, description="Trailing window in days, today included")


def store_unavailable(error: StoreUnavailableError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=str(error)
    )


@router.get(
    "/stats/summary",
    response_model=SummaryResponse,
    summary="Visit totals",
    description="Total visits and visited redirects over the window, plus the number of redirects"
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_stats_summary(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    days: int = days_query(1),
    session: AsyncSession = Depends(get_session)
) -> SummaryResponse:
    try:
        summary = await StatsService(session).get_stats_summary(days)
    except StoreUnavailableError as e:
        raise store_unavailable(e)
    return SummaryResponse(summary=StatsSummaryModel.model_validate(summary))


@router.get(
    "/stats/timeseries",
    response_model=TimeSeriesResponse,
    summary="Visits per day"
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_time_series(
    request: Request,
    days: int = days_query(7),
    session: AsyncSession = Depends(get_session)
) -> TimeSeriesResponse:
    try:
        points = await StatsService(session).get_time_series(days)
    except StoreUnavailableError as e:
        raise store_unavailable(e)
    return TimeSeriesResponse(timeseries=[TimeSeriesPointModel.model_validate(p) for p in points])


@router.get(
    "/stats/top-urls",
    response_model=TopUrlsResponse,
    summary="Most visited redirects"
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_top_urls(
    request: Request,
    limit: int = LIMIT_QUERY,
    days: int = days_query(7),
    session: AsyncSession = Depends(get_session)
) -> TopUrlsResponse:
    try:
        rows = await StatsService(session).get_top_urls(limit, days)
    except StoreUnavailableError as e:
        raise store_unavailable(e)
    return TopUrlsResponse(top_urls=[TopUrlModel.model_validate(r) for r in rows])


@router.get(
    "/stats/top-countries",
    response_model=TopCountriesResponse,
    summary="Visits by country"
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_top_countries(
    request: Request,
    limit: int = LIMIT_QUERY,
    days: int = days_query(7),
    session: AsyncSession = Depends(get_session)
) -> TopCountriesResponse:
    try:
        rows = await StatsService(session).get_top_countries(limit, days)
    except StoreUnavailableError as e:
        raise store_unavailable(e)
    return TopCountriesResponse(top_countries=[TopCountryModel.model_validate(r) for r in rows])


@router.get(
    "/stats/top-referers",
    response_model=TopReferersResponse,
    summary="Top referring domains",
    description="Direct visits and unparseable referers are excluded"
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_top_referers(
    request: Request,
    limit: int = LIMIT_QUERY,
    days: int = days_query(7),
    session: AsyncSession = Depends(get_session)
) -> TopReferersResponse:
    try:
        rows = await StatsService(session).get_top_referers(limit, days)
    except StoreUnavailableError as e:
        raise store_unavailable(e)
    return TopReferersResponse(top_referers=[TopRefererModel.model_validate(r) for r in rows])


@router.get(
    "/stats/top-user-agents",
    response_model=TopUserAgentsResponse,
    summary="Top browser / OS pairs",
    description="Pairs where browser or OS is Unknown are excluded"
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_top_user_agents(
    request: Request,
    limit: int = LIMIT_QUERY,
    days: int = days_query(7),
    session: AsyncSession = Depends(get_session)
) -> TopUserAgentsResponse:
    try:
        rows = await StatsService(session).get_top_user_agents(limit, days)
    except StoreUnavailableError as e:
        raise store_unavailable(e)
    return TopUserAgentsResponse(top_user_agents=[TopUserAgentModel.model_validate(r) for r in rows])


@router.post(
    "/aggregate",
    response_model=AggregateResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Trigger a rollup",
    description="Schedules aggregation of one UTC day in the background and returns immediately"
)
@limiter.limit(RATE_LIMITS["aggregate"])
async def trigger_aggregate(
    request: Request,
    body: AggregateRequest,
    background_tasks: BackgroundTasks
) -> AggregateResponse:
    """
    Queue a rollup of ``body.date``.

    Re-running a day replaces its summary rows, so repeated triggers are safe.
    The outcome is only visible in the logs.

    Raises:
        HTTPException 400: If the date is not YYYY-MM-DD
    """
    try:
        day = parse_day(body.date)
    except InvalidDateError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    background_tasks.add_task(run_rollup_background, day)

    return AggregateResponse(
        success=True,
        date=day.isoformat(),
        message=f"Aggregation of {day.isoformat()} scheduled"
    )


@router.get(
    "/redirects/stats",
    response_model=RedirectStatsResponse,
    summary="All-time visits per redirect"
)
@limiter.limit(RATE_LIMITS["stats"])
async def get_redirect_stats(
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> RedirectStatsResponse:
    try:
        rows = await StatsService(session).get_redirect_stats()
    except StoreUnavailableError as e:
        raise store_unavailable(e)
    return RedirectStatsResponse(redirects=[RedirectStatsModel.model_validate(r) for r in rows])


@router.get(
    "/redirects/{redirect_id}/visits",
    response_model=RedirectVisitsResponse,
    summary="Recent visits of a redirect"
)
@limiter.limit(RATE_LIMITS["visits"])
async def get_redirect_visits(
    redirect_id: int,
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> RedirectVisitsResponse:
    """
    Raises:
        HTTPException 404: If the redirect does not exist
    """
    try:
        visits = await StatsService(session).get_redirect_visits(
            redirect_id, limit=settings.RECENT_VISITS_LIMIT
        )
    except RedirectNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    except StoreUnavailableError as e:
        raise store_unavailable(e)
    return RedirectVisitsResponse(visits=[VisitRecordModel.model_validate(v) for v in visits])
