"""Pydantic request / response schemas for the REST API (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from motogo.domain.enums import OrderStatus, OrderType, UserRole


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# ── Requests ──────────────────────────────────────────────────────────


class QuoteRequest(CamelModel):
    pickup_lat: float = Field(..., ge=-90, le=90)
    pickup_lng: float = Field(..., ge=-180, le=180)
    dropoff_lat: float = Field(..., ge=-90, le=90)
    dropoff_lng: float = Field(..., ge=-180, le=180)


class OrderCreateRequest(QuoteRequest):
    type: OrderType
    pickup_address: str = Field(..., min_length=1, max_length=500)
    dropoff_address: str = Field(..., min_length=1, max_length=500)
    price: Optional[int] = Field(
        None,
        gt=0,
        description="Client-side estimate; the stored price is computed by the server.",
    )
    description: Optional[str] = Field(None, max_length=1000)


class OrderStatusUpdateRequest(CamelModel):
    status: Literal["in_progress", "completed"]


class RatingCreateRequest(CamelModel):
    order_id: int
    driver_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)


class DriverLocationRequest(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class DriverAvailabilityRequest(CamelModel):
    is_online: bool


class RegisterRequest(CamelModel):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)
    password: str = Field(..., min_length=6)
    first_name: Optional[str] = Field(None, max_length=120)
    last_name: Optional[str] = Field(None, max_length=120)
    username: Optional[str] = Field(None, max_length=120)
    phone: Optional[str] = Field(None, max_length=32)
    role: Literal["customer", "driver"] = "customer"


class LoginRequest(CamelModel):
    """Local login sends email + password; OIDC login sends an access token."""

    email: Optional[str] = None
    password: Optional[str] = None
    access_token: Optional[str] = None


# ── Responses ─────────────────────────────────────────────────────────


class OrderResponse(CamelModel):
    id: int
    customer_id: str
    driver_id: Optional[str] = None
    type: OrderType
    status: OrderStatus
    pickup_address: str
    pickup_lat: float
    pickup_lng: float
    dropoff_address: str
    dropoff_lat: float
    dropoff_lng: float
    price: int
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class PricingBreakdownResponse(CamelModel):
    base_fare: float
    distance: float
    distance_charge: float
    subtotal: float
    minimum_fare: float
    base_price: float
    driver_earnings: int
    platform_earnings: int
    customer_pays_cash: int
    processing_fee: int
    customer_pays_card: int


class RatingResponse(CamelModel):
    id: int
    order_id: int
    customer_id: str
    driver_id: str
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


class DriverRatingsResponse(CamelModel):
    driver_id: str
    count: int
    average: float
    ratings: list[RatingResponse] = []


class UserResponse(CamelModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    phone: Optional[str] = None
    profile_image_url: Optional[str] = None
    role: UserRole
    is_online: bool = False
    current_lat: Optional[float] = None
    current_lng: Optional[float] = None


class SessionResponse(CamelModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
    field: Optional[str] = None
