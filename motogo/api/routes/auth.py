"""
Authentication endpoints
========================

POST /api/v1/auth/register -- create a local account (local provider only)
POST /api/v1/auth/login    -- exchange credentials for a session token
POST /api/v1/auth/logout   -- destroy the current session
GET  /api/v1/auth/me       -- the authenticated user
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from motogo.api.dependencies import (
    get_auth_provider,
    get_bearer_token,
    get_current_principal,
    get_db,
    get_session_store,
)
from motogo.api.middleware import RATE_LIMIT, limiter
from motogo.api.schemas import (
    ErrorResponse,
    LoginRequest,
    RegisterRequest,
    SessionResponse,
    UserResponse,
)
from motogo.auth.providers import AuthProvider, hash_password
from motogo.auth.sessions import SessionStore
from motogo.domain.entities import Principal
from motogo.domain.enums import UserRole
from motogo.domain.errors import NotFoundError, ValidationError
from motogo.infrastructure.repositories import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


async def _start_session(store: SessionStore, user) -> SessionResponse:
    token = await store.create(Principal(id=user.id, role=UserRole(user.role)))
    return SessionResponse(token=token, user=UserResponse.model_validate(user))


@router.post(
    "/register",
    status_code=201,
    response_model=SessionResponse,
    summary="Register a customer or driver account",
    responses={400: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMIT)
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    provider: AuthProvider = Depends(get_auth_provider),
    store: SessionStore = Depends(get_session_store),
):
    if not provider.supports_registration:
        raise ValidationError("Accounts are managed by the identity provider")

    users = UserRepository(db)
    if await users.get_by_email(body.email) is not None:
        raise ValidationError("Email already registered", "email")
    username = body.username or body.email.split("@")[0]
    if await users.get_by_username(username) is not None:
        raise ValidationError("Username already taken", "username")

    user = await users.create_user(
        email=body.email,
        password_hash=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        username=username,
        phone=body.phone,
        role=UserRole(body.role),
    )
    logger.info("Registered %s %s", user.role.value, user.id)
    return await _start_session(store, user)


@router.post(
    "/login",
    response_model=SessionResponse,
    summary="Log in",
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    provider: AuthProvider = Depends(get_auth_provider),
    store: SessionStore = Depends(get_session_store),
):
    user = await provider.authenticate(
        body.model_dump(exclude_none=True), UserRepository(db)
    )
    return await _start_session(store, user)


@router.post("/logout", status_code=204, summary="Log out")
@limiter.limit(RATE_LIMIT)
async def logout(
    request: Request,
    token: str = Depends(get_bearer_token),
    store: SessionStore = Depends(get_session_store),
):
    await store.destroy(token)


@router.get("/me", response_model=UserResponse, summary="Current user")
@limiter.limit(RATE_LIMIT)
async def me(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    user = await UserRepository(db).get_by_id(principal.id)
    if user is None:
        raise NotFoundError("User not found")
    return user
