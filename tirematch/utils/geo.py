"""Great-circle distance between coordinates.

### Haversine
    a = sin²(Δφ/2) + cos φ1 · cos φ2 · sin²(Δλ/2)
    c = 2 · atan2(√a, √(1−a))
    d = R · c

φ is latitude and λ is longitude, both in radians. R is the mean Earth radius.
"""

import math

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in kilometers between two (lat, lng) points given in degrees.

    NaN inputs propagate to a NaN result.

    Examples:
        >>> haversine_km(45.5, -73.6, 45.5, -73.6)
        0.0
        >>> round(haversine_km(45.5017, -73.5673, 46.8139, -71.2080))
        233
    """
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c
