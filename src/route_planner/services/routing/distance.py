"""Distance Service capability and provider selection."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from ...config import settings
from ...models.domain import Coordinate
from ..geospatial import AVERAGE_URBAN_SPEED_KMH, estimate_leg
from .models import DistanceResult

logger = logging.getLogger(__name__)

DEFAULT_MODE = "driving"


@runtime_checkable
class DistanceService(Protocol):
    """Pairwise travel distance/duration lookup.

    Implementations raise DistanceLookupError on failure and must bound every
    call with a timeout.
    """

    name: str

    def distance(self, origin: Coordinate, destination: Coordinate, mode: str = DEFAULT_MODE) -> DistanceResult:
        ...


@runtime_checkable
class LegService(Protocol):
    """Richer per-leg lookup following the actual path, optionally with geometry."""

    def leg(self, origin: Coordinate, destination: Coordinate, mode: str = DEFAULT_MODE) -> DistanceResult:
        ...


class HaversineDistanceService:
    """Great-circle estimates at a fixed average speed; never fails, never calls out."""

    name = "haversine"

    def __init__(self, speed_kmh: float = AVERAGE_URBAN_SPEED_KMH) -> None:
        self.speed_kmh = speed_kmh

    def distance(self, origin: Coordinate, destination: Coordinate, mode: str = DEFAULT_MODE) -> DistanceResult:
        distance_km, duration_min = estimate_leg(origin, destination, self.speed_kmh)
        return DistanceResult(distance_m=distance_km * 1000.0, duration_s=duration_min * 60.0)

    def leg(self, origin: Coordinate, destination: Coordinate, mode: str = DEFAULT_MODE) -> DistanceResult:
        result = self.distance(origin, destination, mode)
        return DistanceResult(
            distance_m=result.distance_m,
            duration_s=result.duration_s,
            geometry=[origin.as_tuple(), destination.as_tuple()],
        )


def get_distance_service(provider: str | None = None) -> DistanceService:
    """Build the configured distance service, falling back to local estimates when unconfigured."""

    provider = provider or settings.distance_provider
    if provider == "osrm":
        if settings.osrm_base_url:
            from .osrm_client import OSRMClient

            return OSRMClient()
        logger.warning("OSRM base URL is not configured. Using haversine distance estimates.")
    elif provider == "google":
        if settings.google_maps_api_key:
            from .google_client import GoogleMapsClient

            return GoogleMapsClient()
        logger.warning("Google Maps API key is not configured. Using haversine distance estimates.")
    elif provider != "haversine":
        raise ValueError(f"Unknown distance provider '{provider}'.")
    return HaversineDistanceService(speed_kmh=settings.average_speed_kmh)
