"""FastAPI dependency injection helpers."""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from motogo.auth.providers import AuthProvider
from motogo.auth.sessions import SessionStore
from motogo.domain.drivers import DriverFeed
from motogo.domain.entities import Principal
from motogo.domain.errors import AuthenticationError
from motogo.domain.lifecycle import OrderLifecycle
from motogo.domain.pricing import PricingEngine
from motogo.domain.ratings import RatingService
from motogo.infrastructure.database import async_session_factory
from motogo.infrastructure.repositories import (
    OrderRepository,
    RatingRepository,
    UserRepository,
)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ── Application-scoped services (built once in ``create_app``) ────────


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_auth_provider(request: Request) -> AuthProvider:
    return request.app.state.auth_provider


def get_pricing_engine(request: Request) -> PricingEngine:
    return request.app.state.pricing_engine


# ── Authentication ────────────────────────────────────────────────────


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Unauthorized")
    return credentials.credentials


async def get_current_principal(
    token: str = Depends(get_bearer_token),
    store: SessionStore = Depends(get_session_store),
) -> Principal:
    principal = await store.lookup(token)
    if principal is None:
        raise AuthenticationError("Invalid or expired session")
    return principal


# ── Request-scoped services ───────────────────────────────────────────


def get_order_lifecycle(
    db: AsyncSession = Depends(get_db),
    pricing: PricingEngine = Depends(get_pricing_engine),
) -> OrderLifecycle:
    return OrderLifecycle(OrderRepository(db), pricing)


def get_rating_service(db: AsyncSession = Depends(get_db)) -> RatingService:
    return RatingService(OrderRepository(db), RatingRepository(db))


def get_driver_feed(
    request: Request, db: AsyncSession = Depends(get_db)
) -> DriverFeed:
    settings = request.app.state.settings
    return DriverFeed(
        UserRepository(db),
        resolution=settings.h3_resolution,
        rings=settings.nearby_driver_rings,
    )
