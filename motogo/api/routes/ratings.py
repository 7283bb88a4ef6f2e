"""
Rating endpoints
================

POST /api/v1/ratings                    -- rate the driver of a completed order
GET  /api/v1/ratings/order/{order_id}   -- the rating for an order (or null)
GET  /api/v1/ratings/driver/{driver_id} -- a driver's ratings and average
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from motogo.api.dependencies import get_current_principal, get_rating_service
from motogo.api.middleware import RATE_LIMIT, limiter
from motogo.api.schemas import (
    DriverRatingsResponse,
    ErrorResponse,
    RatingCreateRequest,
    RatingResponse,
)
from motogo.domain.entities import Principal
from motogo.domain.ratings import RatingService

router = APIRouter(prefix="/ratings", tags=["ratings"])


@router.post(
    "",
    status_code=201,
    response_model=RatingResponse,
    summary="Rate the driver of a completed order",
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@limiter.limit(RATE_LIMIT)
async def create_rating(
    request: Request,
    body: RatingCreateRequest,
    principal: Principal = Depends(get_current_principal),
    ratings: RatingService = Depends(get_rating_service),
):
    return await ratings.create(
        principal, body.order_id, body.driver_id, body.rating, body.comment
    )


@router.get(
    "/order/{order_id}",
    response_model=Optional[RatingResponse],
    summary="Get the rating for an order",
)
@limiter.limit(RATE_LIMIT)
async def get_rating_by_order(
    request: Request,
    order_id: int,
    principal: Principal = Depends(get_current_principal),
    ratings: RatingService = Depends(get_rating_service),
):
    return await ratings.get_by_order(order_id)


@router.get(
    "/driver/{driver_id}",
    response_model=DriverRatingsResponse,
    summary="List a driver's ratings with their average",
)
@limiter.limit(RATE_LIMIT)
async def get_driver_ratings(
    request: Request,
    driver_id: str,
    ratings: RatingService = Depends(get_rating_service),
):
    summary = await ratings.driver_summary(driver_id)
    return DriverRatingsResponse(
        driver_id=driver_id,
        count=summary.count,
        average=summary.average,
        ratings=[RatingResponse.model_validate(r) for r in summary.ratings],
    )
