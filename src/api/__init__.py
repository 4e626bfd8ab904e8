"""API module exports."""

from src.api.deps import get_redis, get_tax_service
from src.api.health import router as health_router
from src.api.tax import router as tax_router

__all__ = [
    "get_redis",
    "get_tax_service",
    "health_router",
    "tax_router",
]
