"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Orders deliberately have no generic
update: after creation only ``status`` and ``driver_id`` may change, and
only through ``conditional_update_status``.
"""

from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import OrderModel, RatingModel, UserModel
from motogo.domain.enums import ACTIVE_STATUSES, OrderStatus, OrderType, UserRole
from motogo.domain.errors import ConflictError


class OrderRepository:
    # Fields a status transition may set besides ``status`` itself
    TRANSITION_FIELDS = frozenset({"driver_id"})

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_order(
        self,
        *,
        customer_id: str,
        type: OrderType,
        pickup_address: str,
        pickup_lat: float,
        pickup_lng: float,
        dropoff_address: str,
        dropoff_lat: float,
        dropoff_lng: float,
        price: int,
        description: str | None = None,
    ) -> OrderModel:
        order = OrderModel(
            customer_id=customer_id,
            type=type,
            status=OrderStatus.PENDING,
            pickup_address=pickup_address,
            pickup_lat=pickup_lat,
            pickup_lng=pickup_lng,
            dropoff_address=dropoff_address,
            dropoff_lat=dropoff_lat,
            dropoff_lng=dropoff_lng,
            price=price,
            description=description,
        )
        self.session.add(order)
        await self.session.flush()
        await self.session.refresh(order)
        return order

    async def get_order(self, order_id: int) -> Optional[OrderModel]:
        return await self.session.get(OrderModel, order_id)

    async def list_orders_for_customer(self, customer_id: str) -> list[OrderModel]:
        result = await self.session.execute(
            select(OrderModel)
            .where(OrderModel.customer_id == customer_id)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_all_orders(self) -> list[OrderModel]:
        result = await self.session.execute(
            select(OrderModel).order_by(
                OrderModel.created_at.desc(), OrderModel.id.desc()
            )
        )
        return list(result.scalars().all())

    async def list_pending_orders(self) -> list[OrderModel]:
        result = await self.session.execute(
            select(OrderModel)
            .where(OrderModel.status == OrderStatus.PENDING)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_active_orders_for_driver(self, driver_id: str) -> list[OrderModel]:
        """The driver's accepted / in-progress orders."""
        result = await self.session.execute(
            select(OrderModel)
            .where(
                OrderModel.driver_id == driver_id,
                OrderModel.status.in_(list(ACTIVE_STATUSES)),
            )
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        return list(result.scalars().all())

    async def conditional_update_status(
        self,
        order_id: int,
        expected: OrderStatus,
        new: OrderStatus,
        **extra,
    ) -> Optional[OrderModel]:
        """Compare-and-set on ``status``.

        Returns the refreshed order, or ``None`` when the order is missing
        or no longer in *expected* status.
        """
        unknown = set(extra) - self.TRANSITION_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable on orders: {sorted(unknown)}")

        result = await self.session.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status == expected)
            .values(status=new, **extra)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return await self.session.get(OrderModel, order_id, populate_existing=True)


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: str) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email)
        )
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.username == username)
        )
        return result.scalar_one_or_none()

    async def create_user(self, **fields) -> UserModel:
        """Insert a user; a taken email or username becomes a conflict.

        After a conflict the session must be rolled back (``get_db`` does).
        """
        user = UserModel(**fields)
        self.session.add(user)
        await self._flush_unique()
        await self.session.refresh(user)
        return user

    async def upsert_external_user(self, user_id: str, **fields) -> UserModel:
        """Create or refresh a user provisioned by an external identity provider."""
        user = await self.get_by_id(user_id)
        if user is None:
            return await self.create_user(id=user_id, **fields)
        for key, value in fields.items():
            if value is not None:
                setattr(user, key, value)
        await self._flush_unique()
        return user

    async def _flush_unique(self) -> None:
        try:
            await self.session.flush()
        except IntegrityError:
            raise ConflictError("Email or username already registered", "email") from None

    # ── Driver location feed ─────────────────────────────────────────

    async def update_driver_position(
        self, driver_id: str, lat: float, lng: float, h3_cell: str
    ) -> None:
        await self.session.execute(
            update(UserModel)
            .where(UserModel.id == driver_id, UserModel.role == UserRole.DRIVER)
            .values(current_lat=lat, current_lng=lng, h3_cell=h3_cell)
            .execution_options(synchronize_session=False)
        )

    async def set_driver_online(self, driver_id: str, is_online: bool) -> None:
        await self.session.execute(
            update(UserModel)
            .where(UserModel.id == driver_id, UserModel.role == UserRole.DRIVER)
            .values(is_online=is_online)
            .execution_options(synchronize_session=False)
        )

    async def list_online_drivers(
        self, h3_cells: Iterable[str] | None = None
    ) -> list[UserModel]:
        query = select(UserModel).where(
            UserModel.role == UserRole.DRIVER, UserModel.is_online.is_(True)
        )
        if h3_cells is not None:
            query = query.where(UserModel.h3_cell.in_(list(h3_cells)))
        # Position updates bypass the identity map; reload what they changed
        result = await self.session.execute(
            query.execution_options(populate_existing=True)
        )
        return list(result.scalars().all())


class RatingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_rating(
        self,
        *,
        order_id: int,
        customer_id: str,
        driver_id: str,
        rating: int,
        comment: str | None = None,
    ) -> RatingModel:
        """Insert a rating; the unique ``order_id`` turns a duplicate into a conflict.

        After a conflict the session must be rolled back (``get_db`` does).
        """
        record = RatingModel(
            order_id=order_id,
            customer_id=customer_id,
            driver_id=driver_id,
            rating=rating,
            comment=comment,
        )
        self.session.add(record)
        try:
            await self.session.flush()
        except IntegrityError:
            raise ConflictError("Order already rated") from None
        await self.session.refresh(record)
        return record

    async def get_rating_by_order(self, order_id: int) -> Optional[RatingModel]:
        result = await self.session.execute(
            select(RatingModel).where(RatingModel.order_id == order_id)
        )
        return result.scalar_one_or_none()

    async def list_ratings_by_driver(self, driver_id: str) -> list[RatingModel]:
        result = await self.session.execute(
            select(RatingModel)
            .where(RatingModel.driver_id == driver_id)
            .order_by(RatingModel.created_at.desc(), RatingModel.id.desc())
        )
        return list(result.scalars().all())
