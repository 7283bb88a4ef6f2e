"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Order``: enforces valid lifecycle transitions
  (PENDING -> ACCEPTED -> IN_PROGRESS -> COMPLETED, PENDING -> CANCELLED).
- Each actor-facing method (``accept``, ``cancel``, ``advance``) checks
  role, then identity, then state, and returns a ``Transition`` that the
  repository applies as one conditional update.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .enums import ORDER_TRANSITIONS, OrderStatus, OrderType, UserRole
from .errors import AuthorizationError, InvalidStateTransition, ValidationError


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90 <= self.latitude <= 90:
            raise ValidationError("Latitude must be between -90 and 90", "lat")
        if not -180 <= self.longitude <= 180:
            raise ValidationError("Longitude must be between -180 and 180", "lng")


@dataclass(frozen=True)
class Principal:
    """The authenticated actor behind a request."""

    id: str
    role: UserRole

    @property
    def is_driver(self) -> bool:
        return self.role == UserRole.DRIVER

    @property
    def is_customer(self) -> bool:
        return self.role == UserRole.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class Transition:
    """A status change to apply atomically: ``WHERE status = expected``."""

    expected: OrderStatus
    target: OrderStatus
    changes: dict[str, Any] = field(default_factory=dict)


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Order:
    id: Optional[int] = None
    customer_id: str = ""
    driver_id: Optional[str] = None
    type: OrderType = OrderType.RIDE
    status: OrderStatus = OrderStatus.PENDING
    price: int = 0
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Any) -> "Order":
        return cls(
            id=record.id,
            customer_id=record.customer_id,
            driver_id=record.driver_id,
            type=OrderType(record.type),
            status=OrderStatus(record.status),
            price=record.price,
            created_at=record.created_at,
        )

    def transition_to(self, new_status: OrderStatus) -> Transition:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = ORDER_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}"
            )
        transition = Transition(expected=self.status, target=new_status)
        self.status = new_status
        return transition

    # ── Actor operations ──────────────────────────────────────────

    def accept(self, actor: Principal) -> Transition:
        if not actor.is_driver:
            raise AuthorizationError("Only drivers can accept orders")
        if self.status != OrderStatus.PENDING:
            raise InvalidStateTransition("Order is not available")
        transition = self.transition_to(OrderStatus.ACCEPTED)
        self.driver_id = actor.id
        return Transition(
            transition.expected, transition.target, {"driver_id": actor.id}
        )

    def cancel(self, actor: Principal) -> Transition:
        if actor.id != self.customer_id:
            raise AuthorizationError("Not authorized to cancel this order")
        if self.status != OrderStatus.PENDING:
            raise InvalidStateTransition("Can only cancel pending orders")
        return self.transition_to(OrderStatus.CANCELLED)

    def advance(self, actor: Principal, target: OrderStatus) -> Transition:
        """Driver-side progress: ``in_progress`` or ``completed``."""
        if not actor.is_driver:
            raise AuthorizationError("Only drivers can update order status")
        if target not in (OrderStatus.IN_PROGRESS, OrderStatus.COMPLETED):
            raise ValidationError(
                "Status must be one of: in_progress, completed", "status"
            )
        if self.driver_id != actor.id:
            raise AuthorizationError("Not authorized to update this order")
        return self.transition_to(target)

    def visible_to(self, actor: Principal) -> bool:
        if actor.is_admin:
            return True
        if actor.is_driver:
            return self.status == OrderStatus.PENDING or self.driver_id == actor.id
        return self.customer_id == actor.id
