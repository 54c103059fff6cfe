"""
MealCache FastAPI Application
Main entry point: middleware, exception handlers, routers and lifespan
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import uvicorn
from contextlib import asynccontextmanager
import anyio

from api.routes import health, plans, meals, shopping, recipes
from api.dependencies import get_catalog_client

from domain.models import init_database

from app.config import settings

from api.middleware import (
    RequestLoggingMiddleware,
    validation_exception_handler,
    http_exception_handler,
    service_exception_handler,
    general_exception_handler,
)
from app.exceptions import ServiceError

# Setup logging with configured level and format
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()), format=settings.log_format
)
_logger = logging.getLogger("mealcache.main")


async def _init_database_with_retry() -> None:
    """The database may come up after the API in compose setups; retry schema creation."""
    attempts = settings.db_init_attempts
    for attempt in range(1, attempts + 1):
        try:
            await anyio.to_thread.run_sync(init_database)
            _logger.info("Database ready (%s)", settings.database_url.split("://", 1)[0])
            return
        except Exception as exc:
            if attempt == attempts:
                _logger.error("Database initialization failed after %d attempts", attempts)
                raise
            _logger.warning("Database init attempt %d/%d failed: %s", attempt, attempts, exc)
            await anyio.sleep(settings.db_init_delay_sec)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema on startup; report the catalog budget and release the client on exit."""
    _logger.info("Starting %s in %s mode", settings.app_name, settings.environment.value)
    await _init_database_with_retry()

    try:
        yield
    finally:
        client = get_catalog_client()
        _logger.info(
            "Shutting down; catalog calls this window: %d (remaining %d)",
            client.calls_made,
            client.budget_remaining(),
        )
        client.close()


app = FastAPI(
    title=settings.api_title,
    version=settings.app_version,
    description=settings.api_description,
    lifespan=lifespan,
    debug=settings.debug,
    openapi_url=(
        f"{settings.api_prefix}/openapi.json" if not settings.is_production() else None
    ),
    docs_url=f"{settings.api_prefix}/docs" if not settings.is_production() else None,
    redoc_url=f"{settings.api_prefix}/redoc" if not settings.is_production() else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(ServiceError, service_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(health.router, prefix=settings.api_prefix)
app.include_router(plans.router, prefix=settings.api_prefix)
app.include_router(meals.router, prefix=settings.api_prefix)
app.include_router(shopping.router, prefix=settings.api_prefix)
app.include_router(recipes.router, prefix=settings.api_prefix)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development(),
        log_level=settings.log_level.lower(),
    )
