"""FastAPI application entry point with lifespan management."""

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.health import router as health_router
from src.api.middleware import RequestContextMiddleware
from src.api.tax import router as tax_router
from src.api.tax import tax_api_error_handler
from src.core.config import settings
from src.core.logging import configure_logging, get_logger
from src.core.redis import create_redis_pool
from src.core.sentry import init_sentry
from src.tax.cache import RedisBracketCache
from src.tax.errors import TaxApiError
from src.tax.fetcher import BracketFetcher, FetcherConfig
from src.tax.service import TaxCalculatorService

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle resources.

    Startup:
        - Configure structured logging
        - Initialize Sentry error tracking
        - Establish Redis connection pool when the bracket cache is enabled
        - Create the bracket fetcher and tax service

    Shutdown:
        - Close the fetcher's HTTP client
        - Close Redis connections
    """
    # Configure logging first
    configure_logging()
    logger.info("Starting application", environment=settings.environment)

    # Initialize error tracking
    init_sentry()

    cache = None
    app.state.redis = None
    if settings.bracket_cache_enabled:
        app.state.redis = await create_redis_pool()
        cache = RedisBracketCache(app.state.redis)
        logger.info("Redis pool created")

    config = FetcherConfig.from_settings(settings)
    app.state.tax_service = TaxCalculatorService(BracketFetcher(config), cache=cache)
    logger.info(
        "Tax service created",
        base_url=config.base_url,
        supported_years=list(config.supported_years.years),
    )

    yield

    # Shutdown
    logger.info("Shutting down application")

    await app.state.tax_service.aclose()
    logger.info("Tax service closed")

    if app.state.redis is not None:
        await app.state.redis.aclose()
        logger.info("Redis pool closed")


app = FastAPI(
    title="Marginal Tax Engine",
    description="Progressive tax bracket retrieval and marginal tax calculation",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request context middleware
app.add_middleware(RequestContextMiddleware)

app.add_exception_handler(TaxApiError, tax_api_error_handler)

# Include routers
app.include_router(health_router)
app.include_router(tax_router)
