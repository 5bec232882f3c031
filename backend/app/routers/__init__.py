"""API routers module."""

from .learn import router as learn_router
from .progress import router as progress_router

__all__ = [
    "learn_router",
    "progress_router",
]
