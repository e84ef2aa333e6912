"""
Health check endpoint.

- /healthz: Liveness probe (always 200 if service alive)
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request

from .. import __version__

router = APIRouter()


@router.get(
    "/healthz",
    status_code=200,
    summary="Liveness probe",
    description="""
    Liveness probe endpoint.
    
    Always returns 200 OK if the service is running. Upstream calendars are
    not contacted: they are fetched on demand by each calendar request.
    """,
)
async def liveness_check(request: Request) -> Dict[str, Any]:
    """
    Liveness probe - always returns 200 if service is alive.
    """
    settings = getattr(request.app.state, "settings", None)
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "icstools",
        "version": __version__,
        "calendars": len(settings.calendars) if settings else 0,
    }
