"""Health check endpoint for infrastructure verification."""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from src.api.deps import get_redis
from src.core.redis import check_redis_health

router = APIRouter(prefix="/api", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    redis: str


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Check application health including Redis connectivity.

    Redis is reported as "disabled" when the bracket cache is off, which
    does not degrade the service.

    Returns:
        HealthResponse with status of each component.
    """
    redis_pool = await get_redis(request)
    if redis_pool is None:
        return HealthResponse(status="ok", redis="disabled")

    redis_healthy = await check_redis_health(redis_pool)
    redis_status = "connected" if redis_healthy else "disconnected"

    return HealthResponse(
        status="ok" if redis_status == "connected" else "degraded",
        redis=redis_status,
    )
