"""Serializers for planned routes."""

from __future__ import annotations

import csv
import io
from typing import Iterator

from ..routing.models import Route


def _stop_rows(route: Route) -> Iterator[dict]:
    arrival_min = 0.0
    for sequence, stop in enumerate(route.stops):
        # legs[k] runs from stops[k] to stops[k + 1]
        leg = route.legs[sequence - 1] if 0 < sequence <= len(route.legs) else None
        if leg is not None:
            arrival_min += leg.duration_min
        yield {
            "sequence": sequence,
            "stop_id": stop.stop_id,
            "address": stop.address,
            "latitude": stop.coordinate.latitude,
            "longitude": stop.coordinate.longitude,
            "arrival_min": arrival_min,
            "distance_from_prev_km": leg.distance_km if leg is not None else 0.0,
            "leg_resolved": leg.resolved if leg is not None else True,
        }


def route_to_json(route: Route) -> dict:
    return {
        "status": route.status,
        "total_distance_km": route.total_distance_km,
        "total_duration_min": route.total_duration_min,
        "requested_count": route.requested_count,
        "visited_count": route.visited_count,
        "metadata": route.metadata,
        "stops": list(_stop_rows(route)),
    }


def route_to_csv(route: Route) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "sequence",
        "stop_id",
        "address",
        "latitude",
        "longitude",
        "arrival_min",
        "distance_from_prev_km",
        "leg_resolved",
        "total_distance_km",
        "total_duration_min",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for row in _stop_rows(route):
        writer.writerow(
            {
                **row,
                "total_distance_km": route.total_distance_km,
                "total_duration_min": route.total_duration_min,
            }
        )
    return buffer.getvalue()
