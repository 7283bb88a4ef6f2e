"""
Order endpoints
===============

POST /api/v1/orders/quote         -- fare breakdown for a pickup/drop-off pair
POST /api/v1/orders               -- create an order (customer)
GET  /api/v1/orders               -- orders visible to the caller
GET  /api/v1/orders/{id}          -- one order (poll for status)
POST /api/v1/orders/{id}/accept   -- driver claims a pending order
POST /api/v1/orders/{id}/status   -- driver starts / completes the trip
POST /api/v1/orders/{id}/cancel   -- customer cancels a pending order
"""

from fastapi import APIRouter, Depends, Request

from motogo.api.dependencies import (
    get_current_principal,
    get_order_lifecycle,
    get_pricing_engine,
)
from motogo.api.middleware import RATE_LIMIT, limiter
from motogo.api.schemas import (
    ErrorResponse,
    OrderCreateRequest,
    OrderResponse,
    OrderStatusUpdateRequest,
    PricingBreakdownResponse,
    QuoteRequest,
)
from motogo.domain.entities import Location, Principal
from motogo.domain.enums import OrderStatus
from motogo.domain.lifecycle import OrderLifecycle, OrderRequest
from motogo.domain.pricing import PricingEngine

router = APIRouter(prefix="/orders", tags=["orders"])

_errors = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.post(
    "/quote",
    response_model=PricingBreakdownResponse,
    summary="Price a trip before booking",
)
@limiter.limit(RATE_LIMIT)
async def quote_order(
    request: Request,
    body: QuoteRequest,
    principal: Principal = Depends(get_current_principal),
    pricing: PricingEngine = Depends(get_pricing_engine),
):
    breakdown = await pricing.quote(
        Location(body.pickup_lat, body.pickup_lng),
        Location(body.dropoff_lat, body.dropoff_lng),
    )
    return PricingBreakdownResponse.model_validate(breakdown)


@router.post(
    "",
    status_code=201,
    response_model=OrderResponse,
    summary="Create an order",
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMIT)
async def create_order(
    request: Request,
    body: OrderCreateRequest,
    principal: Principal = Depends(get_current_principal),
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),
):
    return await lifecycle.create(
        principal,
        OrderRequest(
            type=body.type,
            pickup_address=body.pickup_address,
            pickup=Location(body.pickup_lat, body.pickup_lng),
            dropoff_address=body.dropoff_address,
            dropoff=Location(body.dropoff_lat, body.dropoff_lng),
            description=body.description,
            client_price=body.price,
        ),
    )


@router.get(
    "",
    response_model=list[OrderResponse],
    summary="List orders visible to the caller",
    description=(
        "Customers see their own orders. Drivers see every pending order "
        "plus their own accepted / in-progress orders. Admins see all."
    ),
)
@limiter.limit(RATE_LIMIT)
async def list_orders(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),
):
    return await lifecycle.list_visible(principal)


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order status",
    responses=_errors,
)
@limiter.limit(RATE_LIMIT)
async def get_order(
    request: Request,
    order_id: int,
    principal: Principal = Depends(get_current_principal),
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),
):
    return await lifecycle.get(principal, order_id)


@router.post(
    "/{order_id}/accept",
    response_model=OrderResponse,
    summary="Accept a pending order (driver)",
    responses=_errors,
)
@limiter.limit(RATE_LIMIT)
async def accept_order(
    request: Request,
    order_id: int,
    principal: Principal = Depends(get_current_principal),
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),
):
    return await lifecycle.accept(principal, order_id)


@router.post(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Start or complete a trip (assigned driver)",
    responses={400: {"model": ErrorResponse}, **_errors},
)
@limiter.limit(RATE_LIMIT)
async def update_order_status(
    request: Request,
    order_id: int,
    body: OrderStatusUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),
):
    return await lifecycle.advance(principal, order_id, OrderStatus(body.status))


@router.post(
    "/{order_id}/cancel",
    response_model=OrderResponse,
    summary="Cancel a pending order (owning customer)",
    responses=_errors,
)
@limiter.limit(RATE_LIMIT)
async def cancel_order(
    request: Request,
    order_id: int,
    principal: Principal = Depends(get_current_principal),
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),
):
    return await lifecycle.cancel(principal, order_id)
