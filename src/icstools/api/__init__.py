"""
API endpoints package.

Contains FastAPI routers for all service endpoints:
- /{path} - Transformed calendar for a configured path
- /metrics - Prometheus metrics
- /healthz - Liveness check
"""
from .calendars import router as calendars_router
from .healthz import router as healthz_router
from .metrics import router as metrics_router

__all__ = ["calendars_router", "healthz_router", "metrics_router"]
