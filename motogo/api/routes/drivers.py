"""
Driver endpoints
================

GET /api/v1/drivers              -- online drivers (optionally near lat/lng)
PUT /api/v1/driver/location      -- driver position update (overwrites)
PUT /api/v1/driver/availability  -- driver goes online / offline
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response

from motogo.api.dependencies import get_current_principal, get_driver_feed
from motogo.api.middleware import RATE_LIMIT, limiter
from motogo.api.schemas import (
    DriverAvailabilityRequest,
    DriverLocationRequest,
    ErrorResponse,
    UserResponse,
)
from motogo.domain.drivers import DriverFeed
from motogo.domain.entities import Location, Principal
from motogo.domain.errors import ValidationError

router = APIRouter(tags=["drivers"])


@router.get(
    "/drivers",
    response_model=list[UserResponse],
    summary="List online drivers",
    description=(
        "With ``lat`` and ``lng``, only drivers within ``rings`` H3 rings of "
        "the point are returned, closest first."
    ),
)
@limiter.limit(RATE_LIMIT)
async def list_drivers(
    request: Request,
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    rings: Optional[int] = Query(None, ge=0, le=10),
    feed: DriverFeed = Depends(get_driver_feed),
):
    if (lat is None) != (lng is None):
        raise ValidationError("lat and lng must be given together", "lat")
    near = Location(lat, lng) if lat is not None else None
    return await feed.online_drivers(near=near, rings=rings)


@router.put(
    "/driver/location",
    status_code=204,
    summary="Update the calling driver's position",
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMIT)
async def update_location(
    request: Request,
    body: DriverLocationRequest,
    principal: Principal = Depends(get_current_principal),
    feed: DriverFeed = Depends(get_driver_feed),
):
    await feed.update_position(principal, Location(body.lat, body.lng))
    return Response(status_code=204)


@router.put(
    "/driver/availability",
    status_code=204,
    summary="Go online or offline",
    responses={403: {"model": ErrorResponse}},
)
@limiter.limit(RATE_LIMIT)
async def update_availability(
    request: Request,
    body: DriverAvailabilityRequest,
    principal: Principal = Depends(get_current_principal),
    feed: DriverFeed = Depends(get_driver_feed),
):
    await feed.set_availability(principal, body.is_online)
    return Response(status_code=204)
