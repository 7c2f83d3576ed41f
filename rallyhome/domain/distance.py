"""
Distance and ETA estimates using the Haversine formula.

Assumption
----------
We use great-circle (Haversine) distance and a fixed average urban speed
instead of a routing engine.  The resulting ETA tells a waiting rider
roughly how far their driver is; it is **not** routed travel time and
must not be presented as turn-by-turn navigation output.

Complexity: O(1) per call.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from .entities import Location

EARTH_RADIUS_KM = 6_371.0
AVERAGE_URBAN_SPEED_KMH = 30.0

FEET_PER_METER = 3.28084
FEET_PER_MILE = 5280


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def eta_minutes(
    distance_km: float, speed_kmh: float = AVERAGE_URBAN_SPEED_KMH
) -> int:
    """Whole minutes to cover *distance_km* at *speed_kmh*, rounded up."""
    return math.ceil(distance_km / speed_kmh * 60)


@dataclass(frozen=True)
class DriverEta:
    distance_km: float
    eta_minutes: int


def estimate_driver_eta(
    driver: Optional[Location],
    pickup: Optional[Location],
    speed_kmh: float = AVERAGE_URBAN_SPEED_KMH,
) -> Optional[DriverEta]:
    """ETA from the driver's last shared position to the rider's pickup.

    Returns ``None`` when either position is unknown.  The distance is
    rounded to one decimal for display; the minutes are computed from the
    unrounded distance.
    """
    if driver is None or pickup is None:
        return None
    distance = haversine_km(
        driver.latitude, driver.longitude, pickup.latitude, pickup.longitude
    )
    return DriverEta(
        distance_km=round(distance, 1),
        eta_minutes=eta_minutes(distance, speed_kmh),
    )


def format_distance(meters: float, use_feet: bool = True) -> str:
    """Human-readable distance: ``"150 ft"``, ``"0.5 mi"``, ``"150m"``, ``"1.2km"``."""
    if use_feet:
        feet = meters * FEET_PER_METER
        if feet < FEET_PER_MILE:
            return f"{round(feet)} ft"
        return f"{feet / FEET_PER_MILE:.1f} mi"

    if meters < 1000:
        return f"{round(meters)}m"
    return f"{meters / 1000:.1f}km"
