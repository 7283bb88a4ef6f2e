"""
Driver location feed
====================

Drivers push their position every few seconds; each update overwrites
the previous one (no history).  Positions are binned into H3 hexagons so
"drivers near this pickup" is an indexed ``IN`` query over a k-ring of
cells rather than a scan of every online driver.

Complexity
----------
* update:  O(1)                -- one H3 call + one UPDATE
* nearby:  O(k^2 + n log n)    -- grid_disk of radius k, sort n matches
"""

from __future__ import annotations

import logging
from typing import Optional

import h3

from .distance import haversine_km
from .entities import Location, Principal
from .errors import AuthorizationError

logger = logging.getLogger(__name__)


def driver_h3_cell(lat: float, lng: float, resolution: int = 8) -> str:
    """Map a geo-point to an H3 hexagonal cell index.  O(1)."""
    return h3.latlng_to_cell(lat, lng, resolution)


def nearby_cells(location: Location, resolution: int = 8, rings: int = 2) -> set[str]:
    """The cell containing *location* and every cell within *rings* steps."""
    origin = driver_h3_cell(location.latitude, location.longitude, resolution)
    return set(h3.grid_disk(origin, rings))


class DriverFeed:
    def __init__(self, users, resolution: int = 8, rings: int = 2):
        self.users = users
        self.resolution = resolution
        self.rings = rings

    async def update_position(self, actor: Principal, location: Location) -> None:
        if not actor.is_driver:
            raise AuthorizationError("Only drivers can update location")
        cell = driver_h3_cell(location.latitude, location.longitude, self.resolution)
        await self.users.update_driver_position(
            actor.id, location.latitude, location.longitude, cell
        )
        logger.debug("Driver %s at %s (cell %s)", actor.id, location, cell)

    async def set_availability(self, actor: Principal, is_online: bool) -> None:
        if not actor.is_driver:
            raise AuthorizationError("Only drivers can change availability")
        await self.users.set_driver_online(actor.id, is_online)
        logger.info("Driver %s is now %s", actor.id, "online" if is_online else "offline")

    async def online_drivers(
        self, near: Optional[Location] = None, rings: Optional[int] = None
    ):
        """Online drivers; with *near*, only those within the H3 k-ring, closest first."""
        if near is None:
            return await self.users.list_online_drivers()

        cells = nearby_cells(near, self.resolution, self.rings if rings is None else rings)
        drivers = await self.users.list_online_drivers(h3_cells=cells)
        return sorted(
            drivers,
            key=lambda d: haversine_km(
                near.latitude, near.longitude, d.current_lat, d.current_lng
            ),
        )
