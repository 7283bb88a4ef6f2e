"""
FastAPI application factory.

* Registers routes for auth, orders, ratings, drivers and admin.
* Builds the application-scoped services (HTTP client, distance
  resolver, pricing engine, auth provider, session store) once and keeps
  them on ``app.state``; the lifespan hook closes them on shutdown.
* Maps domain errors to structured JSON responses.
* Applies rate-limiting.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from motogo.api.middleware import limiter
from motogo.api.routes import admin, auth, drivers, orders, ratings
from motogo.auth.providers import build_auth_provider
from motogo.auth.sessions import RedisSessionStore, SessionStore
from motogo.config import Settings, settings as default_settings
from motogo.domain.distance import DistanceResolver
from motogo.domain.errors import DomainError
from motogo.domain.pricing import PricingConfig, PricingEngine
from motogo.infrastructure import redis_client

logging.basicConfig(level=default_settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await app.state.http_client.aclose()
    if isinstance(app.state.session_store, RedisSessionStore):
        await redis_client.close_redis()
    logger.info("Shutdown complete")


# ── Error mapping ─────────────────────────────────────────────────────


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    body = {"detail": exc.message}
    if exc.field:
        body["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=body)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    return JSONResponse(
        status_code=400,
        content={
            "detail": first.get("msg", "Invalid request"),
            "field": ".".join(loc) or None,
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(
    settings: Optional[Settings] = None,
    *,
    session_store: Optional[SessionStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title="MotoGo Booking API",
        description=(
            "Customers book rides, food, document and errand deliveries; "
            "drivers accept and fulfil them.  Fares are computed from road "
            "distance with a straight-line fallback."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Application-scoped services
    http = http_client or httpx.AsyncClient()
    resolver = DistanceResolver(
        http,
        api_key=settings.google_maps_api_key,
        endpoint=settings.distance_matrix_url,
        timeout_seconds=settings.distance_timeout_seconds,
    )
    app.state.settings = settings
    app.state.http_client = http
    app.state.pricing_engine = PricingEngine(
        PricingConfig.from_settings(settings), resolver
    )
    app.state.auth_provider = build_auth_provider(settings, http)
    app.state.session_store = session_store or RedisSessionStore(
        redis_client.get_redis(settings.redis_url),
        ttl_seconds=settings.session_ttl_seconds,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Error mapping
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Routers
    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(orders.router, prefix="/api/v1")
    app.include_router(ratings.router, prefix="/api/v1")
    app.include_router(drivers.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
