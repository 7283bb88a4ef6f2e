"""
Session store: opaque bearer token -> ``Principal``.

Sessions are injected per request (see ``motogo.api.dependencies``);
nothing about the current user lives in process-wide state.

* ``RedisSessionStore``    -- production; ``SET key value EX ttl`` so Redis
  evicts expired sessions on its own.
* ``InMemorySessionStore`` -- single-process dev and tests.
"""

from __future__ import annotations

import json
import secrets
import time
from abc import ABC, abstractmethod
from typing import Optional

import redis.asyncio as aioredis

from motogo.domain.entities import Principal
from motogo.domain.enums import UserRole


def new_token() -> str:
    return secrets.token_urlsafe(32)


class SessionStore(ABC):
    def __init__(self, ttl_seconds: int = 7 * 24 * 60 * 60):
        self.ttl = ttl_seconds

    @abstractmethod
    async def create(self, principal: Principal) -> str: ...

    @abstractmethod
    async def lookup(self, token: str) -> Optional[Principal]: ...

    @abstractmethod
    async def destroy(self, token: str) -> None: ...


class RedisSessionStore(SessionStore):
    def __init__(self, client: aioredis.Redis, ttl_seconds: int = 7 * 24 * 60 * 60):
        super().__init__(ttl_seconds)
        self.redis = client

    @staticmethod
    def _key(token: str) -> str:
        return f"session:{token}"

    async def create(self, principal: Principal) -> str:
        token = new_token()
        payload = json.dumps({"id": principal.id, "role": principal.role.value})
        await self.redis.set(self._key(token), payload, ex=self.ttl)
        return token

    async def lookup(self, token: str) -> Optional[Principal]:
        raw = await self.redis.get(self._key(token))
        if raw is None:
            return None
        data = json.loads(raw)
        return Principal(id=data["id"], role=UserRole(data["role"]))

    async def destroy(self, token: str) -> None:
        await self.redis.delete(self._key(token))


class InMemorySessionStore(SessionStore):
    def __init__(self, ttl_seconds: int = 7 * 24 * 60 * 60, clock=time.monotonic):
        super().__init__(ttl_seconds)
        self._clock = clock
        self._sessions: dict[str, tuple[Principal, float]] = {}

    async def create(self, principal: Principal) -> str:
        now = self._clock()
        self._prune(now)
        token = new_token()
        self._sessions[token] = (principal, now + self.ttl)
        return token

    def _prune(self, now: float) -> None:
        expired = [t for t, (_, expires_at) in self._sessions.items() if now >= expires_at]
        for token in expired:
            del self._sessions[token]

    async def lookup(self, token: str) -> Optional[Principal]:
        entry = self._sessions.get(token)
        if entry is None:
            return None
        principal, expires_at = entry
        if self._clock() >= expires_at:
            del self._sessions[token]
            return None
        return principal

    async def destroy(self, token: str) -> None:
        self._sessions.pop(token, None)
