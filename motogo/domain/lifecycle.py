"""
Order Lifecycle Service
=======================

Transition table
----------------
=========== =========== ================================ ===================
From        To          Actor                            Effect
=========== =========== ================================ ===================
(none)      pending     customer                         price fixed
pending     accepted    any driver                       driver_id := actor
pending     cancelled   the order's customer             --
accepted    in_progress the order's driver               --
in_progress completed   the order's driver               rating enabled
=========== =========== ================================ ===================

Concurrency safety
------------------
No in-process locks.  The entity validates the request against the
status it just read, then the repository applies it with
``UPDATE ... WHERE id = :id AND status = :expected``.  If another request
won the race the update touches zero rows and the caller gets a
``ConflictError`` -- two drivers accepting the same order yield exactly
one success.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .entities import Location, Order, Principal, Transition
from .enums import OrderStatus, OrderType
from .errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .pricing import PricingEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderRequest:
    type: OrderType
    pickup_address: str
    pickup: Location
    dropoff_address: str
    dropoff: Location
    description: Optional[str] = None
    client_price: Optional[int] = None


class OrderLifecycle:
    """Validates and applies order status changes for an actor."""

    def __init__(self, orders, pricing: PricingEngine):
        self.orders = orders
        self.pricing = pricing

    # ── Creation ──────────────────────────────────────────────────

    async def create(self, actor: Principal, request: OrderRequest):
        if not actor.is_customer:
            raise AuthorizationError("Only customers can create orders")
        if not request.pickup_address.strip():
            raise ValidationError("Pickup address is required", "pickupAddress")
        if not request.dropoff_address.strip():
            raise ValidationError("Dropoff address is required", "dropoffAddress")

        quote = await self.pricing.quote(request.pickup, request.dropoff)
        price = quote.order_price
        if price <= 0:
            raise ValidationError("Computed price must be positive", "price")
        if request.client_price is not None and request.client_price != price:
            logger.info(
                "Client quoted RD$%d, server priced RD$%d (%.2f km)",
                request.client_price, price, quote.distance,
            )

        order = await self.orders.create_order(
            customer_id=actor.id,
            type=request.type,
            pickup_address=request.pickup_address.strip(),
            pickup_lat=request.pickup.latitude,
            pickup_lng=request.pickup.longitude,
            dropoff_address=request.dropoff_address.strip(),
            dropoff_lat=request.dropoff.latitude,
            dropoff_lng=request.dropoff.longitude,
            price=price,
            description=request.description,
        )
        logger.info("Order %s created by %s (RD$%d)", order.id, actor.id, price)
        return order

    # ── Transitions ───────────────────────────────────────────────

    async def accept(self, actor: Principal, order_id: int):
        order = Order.from_record(await self._load(order_id))
        return await self._apply(order_id, order.accept(actor), "Order is not available")

    async def cancel(self, actor: Principal, order_id: int):
        order = Order.from_record(await self._load(order_id))
        return await self._apply(
            order_id, order.cancel(actor), "Can only cancel pending orders"
        )

    async def advance(self, actor: Principal, order_id: int, target: OrderStatus):
        order = Order.from_record(await self._load(order_id))
        transition = order.advance(actor, target)
        return await self._apply(
            order_id,
            transition,
            f"Cannot transition from {transition.expected.value} to {target.value}",
        )

    async def _apply(self, order_id: int, transition: Transition, conflict: str):
        updated = await self.orders.conditional_update_status(
            order_id, transition.expected, transition.target, **transition.changes
        )
        if updated is None:
            raise ConflictError(conflict)
        logger.info(
            "Order %s: %s -> %s",
            order_id, transition.expected.value, transition.target.value,
        )
        return updated

    # ── Reads ─────────────────────────────────────────────────────

    async def get(self, actor: Principal, order_id: int):
        record = await self._load(order_id)
        if not Order.from_record(record).visible_to(actor):
            raise AuthorizationError("Not authorized to view this order")
        return record

    async def list_visible(self, actor: Principal):
        if actor.is_admin:
            return await self.orders.list_all_orders()
        if actor.is_driver:
            # Disjoint by status, so a merge needs no de-duplication
            orders = await self.orders.list_pending_orders()
            orders += await self.orders.list_active_orders_for_driver(actor.id)
            return sorted(orders, key=lambda o: (o.created_at, o.id), reverse=True)
        return await self.orders.list_orders_for_customer(actor.id)

    async def _load(self, order_id: int):
        record = await self.orders.get_order(order_id)
        if record is None:
            raise NotFoundError("Order not found")
        return record
