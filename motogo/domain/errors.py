"""
Domain error taxonomy.

The API layer maps each subclass of ``DomainError`` to an HTTP status
(see ``motogo.api.app``).  ``UpstreamDegradation`` never reaches a
caller: the distance resolver catches it and falls back to haversine.
"""

from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(DomainError):
    """Malformed or missing input."""

    status_code = 400


class AuthenticationError(DomainError):
    """No valid session or credentials."""

    status_code = 401


class AuthorizationError(DomainError):
    """Actor lacks the required role or identity match."""

    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """A precondition on current state no longer holds."""

    status_code = 409


class InvalidStateTransition(ConflictError):
    """Raised when an order status change violates the state machine."""


class UpstreamDegradation(Exception):
    """An external provider failed; callers degrade instead of failing."""
