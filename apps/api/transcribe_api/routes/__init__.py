"""Route modules."""

from .jobs import router as jobs_router
from .transcriptions import router as transcriptions_router
from .worker import router as worker_router

__all__ = ["jobs_router", "transcriptions_router", "worker_router"]
