"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``    -- customers, drivers and admins (+ driver position feed)
* ``orders``   -- ride / delivery / errand requests
* ``ratings``  -- at most one customer rating per completed order

Indexes
-------
* **B-Tree** on ``orders.status``, ``orders.customer_id``,
  ``orders.driver_id`` for the polling queries, and on ``users.h3_cell``
  + ``users.is_online`` for the nearby-driver lookup.
* **Unique** on ``ratings.order_id`` enforces one rating per order.
"""

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)

from .database import Base
from motogo.domain.enums import OrderStatus, OrderType, UserRole


def _enum(enum_cls, name: str) -> Enum:
    # Persist the lowercase values ("in_progress"), not the member names
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=True)
    password_hash = Column(String(255), nullable=True)
    first_name = Column(String(120), nullable=True)
    last_name = Column(String(120), nullable=True)
    username = Column(String(120), unique=True, nullable=True)
    phone = Column(String(32), nullable=True)
    profile_image_url = Column(String(512), nullable=True)

    role = Column(_enum(UserRole, "userrole"), default=UserRole.CUSTOMER, nullable=False)
    is_online = Column(Boolean, default=False, nullable=False)
    current_lat = Column(Float, nullable=True)
    current_lng = Column(Float, nullable=True)
    h3_cell = Column(String(20), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_users_role_online", "role", "is_online"),
        Index("idx_users_h3_cell", "h3_cell"),
    )


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    driver_id = Column(String(64), ForeignKey("users.id"), nullable=True)

    type = Column(_enum(OrderType, "ordertype"), nullable=False)
    status = Column(
        _enum(OrderStatus, "orderstatus"), default=OrderStatus.PENDING, nullable=False
    )

    pickup_address = Column(Text, nullable=False)
    pickup_lat = Column(Float, nullable=False)
    pickup_lng = Column(Float, nullable=False)
    dropoff_address = Column(Text, nullable=False)
    dropoff_lat = Column(Float, nullable=False)
    dropoff_lng = Column(Float, nullable=False)

    price = Column(Integer, nullable=False)  # RD$, fixed at creation
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_orders_price_positive"),
        Index("idx_orders_status", "status"),
        Index("idx_orders_customer", "customer_id"),
        Index("idx_orders_driver", "driver_id"),
    )


class RatingModel(Base):
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False)
    customer_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    driver_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_ratings_range"),
        Index("idx_ratings_driver", "driver_id"),
    )
