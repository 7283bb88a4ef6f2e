"""
Shared test fixtures.

Uses a file-backed SQLite database per test (via aiosqlite) so tests run
without Docker / PostgreSQL / Redis, and so separate sessions get separate
connections -- the concurrent-accept tests rely on that.  Sessions live in
an ``InMemorySessionStore``; the distance provider is an
``httpx.MockTransport`` that refuses every request, so pricing always
takes the haversine path unless a test says otherwise.
"""

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from motogo.auth.sessions import InMemorySessionStore
from motogo.config import Settings
from motogo.domain.distance import DistanceResolver
from motogo.domain.entities import Principal
from motogo.domain.enums import UserRole
from motogo.domain.pricing import PricingConfig, PricingEngine
from motogo.infrastructure import models
from motogo.infrastructure.database import (
    build_engine,
    build_session_factory,
    create_all,
)


USERS = [
    ("customer-1", UserRole.CUSTOMER),
    ("customer-2", UserRole.CUSTOMER),
    ("driver-1", UserRole.DRIVER),
    ("driver-2", UserRole.DRIVER),
    ("admin-1", UserRole.ADMIN),
]

# Santo Domingo: Parque Colon -> Agora Mall (~5.9 km straight line)
PICKUP = (18.4735, -69.8846)
DROPOFF = (18.4838, -69.9390)


def offline_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("network disabled in tests", request=request)

    return httpx.MockTransport(handler)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def order_body(**overrides) -> dict:
    body = {
        "type": "ride",
        "pickupAddress": "Parque Colon",
        "pickupLat": PICKUP[0],
        "pickupLng": PICKUP[1],
        "dropoffAddress": "Agora Mall",
        "dropoffLat": DROPOFF[0],
        "dropoffLng": DROPOFF[1],
    }
    body.update(overrides)
    return body


# ── Database ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def principals(session_factory) -> dict[str, Principal]:
    """Seed one row per entry in ``USERS``; return their principals by id."""
    async with session_factory() as session:
        for user_id, role in USERS:
            session.add(
                models.UserModel(
                    id=user_id,
                    email=f"{user_id}@example.com",
                    username=user_id,
                    role=role,
                )
            )
        await session.commit()
    return {user_id: Principal(user_id, role) for user_id, role in USERS}


# ── Domain services ───────────────────────────────────────────────────


@pytest_asyncio.fixture
async def pricing_engine() -> AsyncGenerator[PricingEngine, None]:
    async with httpx.AsyncClient(transport=offline_transport()) as http:
        yield PricingEngine(PricingConfig(), DistanceResolver(http))


# ── HTTP ──────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def app(session_factory, principals):
    from motogo.api.app import create_app
    from motogo.api.dependencies import get_db
    from motogo.api.middleware import limiter

    http = httpx.AsyncClient(transport=offline_transport())
    app = create_app(
        Settings(google_maps_api_key="", auth_provider="local"),
        session_store=InMemorySessionStore(),
        http_client=http,
    )

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _test_db
    limiter.enabled = False
    yield app
    limiter.enabled = True
    await http.aclose()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def tokens(app, principals) -> dict[str, str]:
    """A live session token for every seeded user."""
    store = app.state.session_store
    return {uid: await store.create(p) for uid, p in principals.items()}
