"""Great-circle distance between two coordinates."""
from __future__ import annotations

import math

KM_PER_DEGREE = 111.111


def distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Return the distance in kilometres using the spherical law of cosines."""
    if lat1 == lat2 and lng1 == lng2:
        return 0.0
    cosine = (
        math.cos(math.radians(lat2))
        * math.cos(math.radians(lat1))
        * math.cos(math.radians(lng2 - lng1))
        + math.sin(math.radians(lat2)) * math.sin(math.radians(lat1))
    )
    # Rounding can push identical or antipodal points just outside acos' domain.
    cosine = max(-1.0, min(1.0, cosine))
    return KM_PER_DEGREE * math.degrees(math.acos(cosine))


__all__ = ["KM_PER_DEGREE", "distance_km"]
