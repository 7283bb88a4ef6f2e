"""Customer ratings of drivers: one per completed order, never edited."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from .entities import Principal
from .enums import OrderStatus
from .errors import AuthorizationError, ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 500


@dataclass(frozen=True)
class DriverRatingSummary:
    driver_id: str
    count: int
    average: float
    ratings: tuple = ()


class RatingService:
    def __init__(self, orders, ratings):
        self.orders = orders
        self.ratings = ratings

    async def create(
        self,
        actor: Principal,
        order_id: int,
        driver_id: str,
        rating: int,
        comment: Optional[str] = None,
    ):
        if not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5", "rating")
        if comment is not None:
            comment = comment.strip() or None
        if comment is not None and len(comment) > MAX_COMMENT_LENGTH:
            raise ValidationError(
                f"Comment must be at most {MAX_COMMENT_LENGTH} characters", "comment"
            )

        order = await self.orders.get_order(order_id)
        if order is None:
            raise NotFoundError("Order not found")
        if order.customer_id != actor.id:
            raise AuthorizationError("Only the order's customer can rate it")
        if OrderStatus(order.status) != OrderStatus.COMPLETED:
            raise ConflictError("Can only rate completed orders")
        if order.driver_id != driver_id:
            raise ValidationError("Driver did not fulfil this order", "driverId")
        if await self.ratings.get_rating_by_order(order_id) is not None:
            raise ConflictError("Order already rated")

        record = await self.ratings.create_rating(
            order_id=order_id,
            customer_id=actor.id,
            driver_id=driver_id,
            rating=rating,
            comment=comment,
        )
        logger.info("Order %s rated %d by %s", order_id, rating, actor.id)
        return record

    async def get_by_order(self, order_id: int):
        return await self.ratings.get_rating_by_order(order_id)

    async def list_by_driver(self, driver_id: str):
        return await self.ratings.list_ratings_by_driver(driver_id)

    async def driver_summary(self, driver_id: str) -> DriverRatingSummary:
        records = await self.list_by_driver(driver_id)
        summary = summarize(driver_id, [r.rating for r in records])
        return replace(summary, ratings=tuple(records))


def summarize(driver_id: str, scores: list[int]) -> DriverRatingSummary:
    if not scores:
        return DriverRatingSummary(driver_id=driver_id, count=0, average=0.0)
    return DriverRatingSummary(
        driver_id=driver_id,
        count=len(scores),
        average=round(sum(scores) / len(scores), 2),
    )
