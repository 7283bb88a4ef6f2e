"""
Fare Pricing Engine
===================

Formula
-------
base_price        = max(Minimum_Fare, Base_Fare + Distance x Distance_Rate)
driver_earnings   = round_up(base_price x Driver_Share)
platform_earnings = round_up(base_price x Platform_Share)
customer_cash     = driver_earnings + platform_earnings
processing_fee    = round_up(base_price x Card_Fee_Rate)
customer_card     = customer_cash + processing_fee

``round_up`` rounds UP to the next multiple of the rounding unit (RD$5).
The two shares are rounded independently so the driver and the platform
each receive a cash-friendly amount; ``customer_cash`` can therefore be
slightly above ``base_price``.  This is intentional.

Only ``base_price`` (rounded half-up to an integer) is stored on the
order; the rest of the breakdown is shown to the customer and driver.

Complexity: O(1) per price calculation.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass

from .distance import DistanceResolver
from .entities import Location


@dataclass(frozen=True)
class PricingConfig:
    base_fare: float = 30.0
    distance_rate: float = 12.0
    minimum_fare: float = 50.0
    driver_share: float = 0.85
    card_processing_fee_rate: float = 0.03
    rounding_unit: int = 5

    def __post_init__(self):
        if not 0 <= self.driver_share <= 1:
            raise ValueError("driver_share must be within [0, 1]")
        if self.rounding_unit <= 0:
            raise ValueError("rounding_unit must be positive")
        if self.minimum_fare <= 0:
            raise ValueError("minimum_fare must be positive")

    @property
    def platform_share(self) -> float:
        return round(1 - self.driver_share, 10)

    @classmethod
    def from_settings(cls, settings) -> "PricingConfig":
        return cls(
            base_fare=settings.base_fare,
            distance_rate=settings.distance_rate,
            minimum_fare=settings.minimum_fare,
            driver_share=settings.driver_share,
            card_processing_fee_rate=settings.card_processing_fee_rate,
            rounding_unit=settings.rounding_unit,
        )


@dataclass(frozen=True)
class PricingBreakdown:
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

    @property
    def order_price(self) -> int:
        """``base_price`` rounded half-up, as persisted on the order."""
        return int(math.floor(self.base_price + 0.5))

    def as_dict(self) -> dict:
        return asdict(self)


def round_up(amount: float, unit: int = 5) -> int:
    """Smallest multiple of *unit* that is >= *amount*.

    The quotient is rounded to 9 places first so float noise such as
    ``15.000000000000002`` stays on 15.
    """
    return math.ceil(round(amount / unit, 9)) * unit


def calculate_pricing(
    distance_km: float, config: PricingConfig = PricingConfig()
) -> PricingBreakdown:
    if distance_km < 0:
        raise ValueError("distance must be non-negative")

    distance_charge = distance_km * config.distance_rate
    subtotal = config.base_fare + distance_charge
    base_price = max(config.minimum_fare, subtotal)

    unit = config.rounding_unit
    driver_earnings = round_up(base_price * config.driver_share, unit)
    platform_earnings = round_up(base_price * config.platform_share, unit)
    customer_pays_cash = driver_earnings + platform_earnings

    processing_fee = round_up(base_price * config.card_processing_fee_rate, unit)

    return PricingBreakdown(
        base_fare=config.base_fare,
        distance=distance_km,
        distance_charge=distance_charge,
        subtotal=subtotal,
        minimum_fare=config.minimum_fare,
        base_price=base_price,
        driver_earnings=driver_earnings,
        platform_earnings=platform_earnings,
        customer_pays_cash=customer_pays_cash,
        processing_fee=processing_fee,
        customer_pays_card=customer_pays_cash + processing_fee,
    )


# ── Engine facade ─────────────────────────────────────────────────────


class PricingEngine:
    """High-level API used by the order lifecycle and the quote endpoint."""

    def __init__(self, config: PricingConfig, resolver: DistanceResolver):
        self.config = config
        self.resolver = resolver

    async def quote(self, pickup: Location, dropoff: Location) -> PricingBreakdown:
        distance = await self.resolver.resolve_km(pickup, dropoff)
        return calculate_pricing(distance, self.config)
