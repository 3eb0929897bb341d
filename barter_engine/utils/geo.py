"""Great-circle distance and distance unit helpers."""
from __future__ import annotations

import math

from barter_engine.config import ELIGIBILITY_SETTINGS, KM_PER_MILE


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    radius = float(ELIGIBILITY_SETTINGS["earth_radius_km"])
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return 2 * radius * math.asin(min(1.0, math.sqrt(a)))


def miles_to_km(miles: float) -> float:
    return miles * KM_PER_MILE


__all__ = ["haversine_km", "miles_to_km"]
