"""Total distance/duration for a chosen visiting order."""

from __future__ import annotations

import logging
from typing import Sequence

from ...models.domain import Stop
from .distance import DEFAULT_MODE, DistanceService, LegService
from .errors import DistanceLookupError
from .models import DistanceMatrix, DistanceResult, Route, RouteLeg

logger = logging.getLogger(__name__)


def _resolve_leg(
    service: DistanceService,
    origin: Stop,
    destination: Stop,
    mode: str,
    cached: DistanceResult | None,
) -> DistanceResult:
    if isinstance(service, LegService):
        return service.leg(origin.coordinate, destination.coordinate, mode)
    if cached is not None:
        return cached
    return service.distance(origin.coordinate, destination.coordinate, mode)


def aggregate_route(
    stops: Sequence[Stop],
    order: Sequence[int],
    service: DistanceService,
    *,
    matrix: DistanceMatrix | None = None,
    mode: str = DEFAULT_MODE,
    return_to_depot: bool = False,
) -> Route:
    """Resolve every consecutive leg of `order` and sum the totals.

    Services exposing `leg` are asked for the richer path lookup; others reuse
    the matrix entry when it is reachable. A leg whose lookup fails contributes
    nothing and is reported with `resolved=False`, which makes the totals a
    lower bound rather than an error.
    """
    visited = [stops[index] for index in order]
    path = list(order)
    if return_to_depot and len(path) > 1 and len(path) == len(stops):
        path.append(path[0])

    legs: list[RouteLeg] = []
    total_distance_km = 0.0
    total_duration_min = 0.0

    for origin_index, destination_index in zip(path, path[1:]):
        origin, destination = stops[origin_index], stops[destination_index]
        cached = None
        if matrix is not None and not isinstance(service, LegService):
            entry = matrix.entry(origin_index, destination_index)
            if entry.reachable:
                cached = DistanceResult(distance_m=entry.distance_m, duration_s=entry.duration_s)
        try:
            result = _resolve_leg(service, origin, destination, mode, cached)
        except DistanceLookupError as exc:
            logger.warning(f"Skipping leg {origin.stop_id} -> {destination.stop_id}: {exc}")
            legs.append(RouteLeg(origin.stop_id, destination.stop_id, 0.0, 0.0, resolved=False))
            continue
        except Exception as exc:
            logger.warning(f"Skipping leg {origin.stop_id} -> {destination.stop_id}: {type(exc).__name__}: {exc}")
            legs.append(RouteLeg(origin.stop_id, destination.stop_id, 0.0, 0.0, resolved=False))
            continue

        distance_km = result.distance_m / 1000.0
        duration_min = result.duration_s / 60.0
        total_distance_km += distance_km
        total_duration_min += duration_min
        legs.append(
            RouteLeg(
                from_stop_id=origin.stop_id,
                to_stop_id=destination.stop_id,
                distance_km=distance_km,
                duration_min=duration_min,
                geometry=result.geometry,
            )
        )

    return Route(
        stops=visited,
        total_distance_km=total_distance_km,
        total_duration_min=total_duration_min,
        requested_count=len(stops),
        legs=legs,
    )
