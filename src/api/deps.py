"""FastAPI dependency injection for the tax service and Redis access."""

from typing import TYPE_CHECKING

from fastapi import Request

from src.tax.service import TaxCalculatorService

if TYPE_CHECKING:
    import redis.asyncio as redis


async def get_tax_service(request: Request) -> TaxCalculatorService:
    """Get the tax calculator service from app state.

    Args:
        request: FastAPI request containing app state.

    Returns:
        Shared TaxCalculatorService for the application.
    """
    return request.app.state.tax_service


async def get_redis(request: Request) -> "redis.Redis | None":
    """Get Redis connection pool from app state.

    Args:
        request: FastAPI request containing app state.

    Returns:
        Redis connection pool, or None when the bracket cache is disabled.
    """
    return getattr(request.app.state, "redis", None)
