"""
Authentication providers  (Strategy Pattern)
============================================

Exactly one provider is selected at startup from ``settings.auth_provider``
and used for every login; strategies are never mixed per request.

* ``LocalCredentialsProvider`` -- email + password checked against a
  PBKDF2-SHA256 hash stored on the user row.
* ``ExternalOIDCProvider``     -- an access token issued by an external
  OpenID Connect provider, verified by calling its userinfo endpoint.
  Users are provisioned on first login, keyed by the ``sub`` claim.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from abc import ABC, abstractmethod

import httpx

from motogo.domain.errors import AuthenticationError, ConflictError, ValidationError

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 260_000


# ── Password hashing ──────────────────────────────────────────────────


def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS
    )
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, hashed: str) -> bool:
    try:
        algorithm, iterations, salt, expected = hashed.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), salt.encode(), int(iterations)
    )
    return hmac.compare_digest(digest.hex(), expected)


# ── Strategy hierarchy ────────────────────────────────────────────────


class AuthProvider(ABC):
    name: str = ""
    supports_registration: bool = False

    @abstractmethod
    async def authenticate(self, credentials: dict, users):
        """Return the authenticated user row or raise ``AuthenticationError``."""


class LocalCredentialsProvider(AuthProvider):
    name = "local"
    supports_registration = True

    async def authenticate(self, credentials: dict, users):
        email = credentials.get("email")
        password = credentials.get("password")
        if not email or not password:
            raise ValidationError("Email and password are required", "email")

        user = await users.get_by_email(email)
        if user is None or not user.password_hash:
            raise AuthenticationError("Invalid email or password")
        if not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        return user


class ExternalOIDCProvider(AuthProvider):
    name = "oidc"

    def __init__(self, http_client: httpx.AsyncClient, userinfo_url: str):
        if not userinfo_url:
            raise ValueError("OIDC provider requires a userinfo URL")
        self.http = http_client
        self.userinfo_url = userinfo_url

    async def authenticate(self, credentials: dict, users):
        token = credentials.get("access_token")
        if not token:
            raise ValidationError("access_token is required", "accessToken")

        try:
            response = await self.http.get(
                self.userinfo_url,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            logger.warning("OIDC userinfo request failed: %s", exc)
            raise AuthenticationError("Identity provider unavailable") from None

        if response.status_code != 200:
            raise AuthenticationError("Invalid access token")
        try:
            claims = response.json()
        except ValueError:
            raise AuthenticationError("Invalid identity provider response") from None
        if not isinstance(claims, dict) or not claims.get("sub"):
            raise AuthenticationError("Invalid identity provider response")

        user_id = str(claims["sub"])
        email = claims.get("email")
        if email:
            owner = await users.get_by_email(email)
            if owner is not None and owner.id != user_id:
                logger.warning(
                    "OIDC user %s claims the email of user %s; ignoring it",
                    user_id, owner.id,
                )
                email = None

        try:
            return await users.upsert_external_user(
                user_id,
                email=email,
                first_name=claims.get("given_name"),
                last_name=claims.get("family_name"),
                profile_image_url=claims.get("picture"),
            )
        except ConflictError:
            raise AuthenticationError("Account conflicts with an existing user") from None


def build_auth_provider(settings, http_client: httpx.AsyncClient) -> AuthProvider:
    if settings.auth_provider == "local":
        return LocalCredentialsProvider()
    if settings.auth_provider == "oidc":
        return ExternalOIDCProvider(http_client, settings.oidc_userinfo_url)
    raise ValueError(f"Unknown auth provider: {settings.auth_provider!r}")
