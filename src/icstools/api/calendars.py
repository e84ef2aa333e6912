"""
Calendar serving endpoint.

Main endpoint: GET /{path}
"""

import time
import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request, Response
from starlette.concurrency import run_in_threadpool

from ..config import Settings
from ..core import pipeline
from ..core.exceptions import CalendarNotConfiguredError, IcsToolsException
from ..core.fetcher import UpstreamFetcher
from ..core.metrics import MetricsCollector
from ..models import ErrorResponse

logger = structlog.get_logger(__name__)

router = APIRouter()

CALENDAR_MEDIA_TYPE = "text/calendar; charset=utf-8"


async def get_app_settings(request: Request) -> Settings:
    """Dependency to get the settings the app was created with."""
    return request.app.state.settings


async def get_fetcher(request: Request) -> UpstreamFetcher:
    """Dependency to get the upstream fetcher from app state."""
    return request.app.state.fetcher


async def get_metrics(request: Request) -> Optional[MetricsCollector]:
    """Dependency to get the metrics collector from app state (if available)."""
    return getattr(request.app.state, "metrics", None)


@router.get(
    "/{path}",
    response_class=Response,
    responses={
        200: {"content": {"text/calendar": {}}, "description": "Transformed calendar"},
        404: {"model": ErrorResponse, "description": "Path not configured"},
        502: {"model": ErrorResponse, "description": "Upstream unreachable or invalid"},
    },
    summary="Serve a transformed calendar",
    description="""
    Fetch the upstream calendar configured for `path` and serve it rewritten.

    **Modes:**
    - `anonymize`: keeps time slots, replaces summaries and UIDs, drops
      descriptions, locations, attendees, organizers and alarms
    - `filter`: drops events whose summary matches the configured value

    Each request fetches and processes the upstream document independently.
    """,
)
async def serve_calendar(
    path: str,
    settings: Settings = Depends(get_app_settings),
    fetcher: UpstreamFetcher = Depends(get_fetcher),
    metrics: Optional[MetricsCollector] = Depends(get_metrics),
) -> Response:
    """
    Serve one configured calendar.
    """
    route = settings.calendars.get(path)
    if route is None:
        logger.warning("Calendar path not configured", path=path)
        raise CalendarNotConfiguredError(path)

    request_id = str(uuid.uuid4())
    logger.info("Serving calendar", request_id=request_id, calendar=path, mode=route.mode)

    try:
        fetch_start = time.perf_counter()
        raw = await fetcher.fetch(route.url)
        if metrics:
            metrics.record_fetch(path, time.perf_counter() - fetch_start, len(raw))

        if route.mode == "anonymize":
            result = await run_in_threadpool(
                pipeline.run_anonymize, raw, route.anonymize_config(settings.anonymize)
            )
        else:
            result = await run_in_threadpool(
                pipeline.run_filter, raw, route.filter_config(settings.filter)
            )

    except IcsToolsException as e:
        if metrics:
            metrics.record_error(path, route.mode, e.error_code)
        logger.warning(
            "Calendar request failed",
            request_id=request_id,
            calendar=path,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise

    if metrics:
        metrics.record_transform(
            path,
            route.mode,
            result.events_in,
            result.events_out,
            result.processing_time_ms,
        )

    logger.info(
        "Calendar served",
        request_id=request_id,
        calendar=path,
        events_in=result.events_in,
        events_out=result.events_out,
        size_bytes=len(result.body),
    )

    return Response(content=result.body, media_type=CALENDAR_MEDIA_TYPE)
