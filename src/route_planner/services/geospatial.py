"""Geospatial helper functions."""

from __future__ import annotations

import math

from ..models.domain import Coordinate

EARTH_RADIUS_KM = 6371.0
AVERAGE_URBAN_SPEED_KMH = 30.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push `a` a hair past 1 for antipodal points.
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def estimate_duration_min(distance_km: float, speed_kmh: float = AVERAGE_URBAN_SPEED_KMH) -> float:
    """Travel time in minutes for a distance driven at an average urban speed."""

    if speed_kmh <= 0:
        raise ValueError("Average speed must be positive.")
    return (distance_km / speed_kmh) * 60.0


def estimate_leg(
    origin: Coordinate, destination: Coordinate, speed_kmh: float = AVERAGE_URBAN_SPEED_KMH
) -> tuple[float, float]:
    """Return a (distance_km, duration_min) great-circle estimate between two coordinates.

    Deterministic and free of side effects; used when the external distance
    service is not configured or gives no usable data.
    """

    distance_km = haversine_km(origin.latitude, origin.longitude, destination.latitude, destination.longitude)
    return distance_km, estimate_duration_min(distance_km, speed_kmh)
