"""Route planning entrypoint and HTTP-facing orchestration."""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Mapping, Sequence as SequenceABC
from numbers import Real
from typing import Any, Sequence

from ...config import settings
from ...data.deliveries_repository import get_deliveries
from ...models.domain import Coordinate, Stop
from ...persistence.filesystem import FileStorage
from ...schemas.routing import (
    CoordinatesModel,
    DeliveryModel,
    DeliveryRouteRequest,
    RouteLegModel,
    RouteOptimizationRequest,
    RouteOptimizationResponse,
)
from ..outputs.routing_formatter import route_to_csv, route_to_json
from .aggregator import aggregate_route
from .distance import DistanceService, HaversineDistanceService, get_distance_service
from .errors import InvalidStopsError, NoDistanceDataError
from .matrix import LazyDistanceMatrix, build_distance_matrix
from .models import DistanceMatrix, Route
from .solver import improve_two_opt, nearest_neighbor_order

logger = logging.getLogger(__name__)

DEPOT_STOP_ID = "depot"


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def _validate_coordinate(coordinate: Any, label: str) -> None:
    latitude = getattr(coordinate, "latitude", None)
    longitude = getattr(coordinate, "longitude", None)
    if not _is_number(latitude) or not _is_number(longitude):
        raise InvalidStopsError(f"Invalid coordinates for {label}")
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise InvalidStopsError(
            f"Invalid coordinates for {label}",
            detail=f"latitude={latitude}, longitude={longitude} out of range",
        )


def validate_stops(stops: Any) -> list[Stop]:
    """Reject anything that is not a non-empty sequence of Stops with valid coordinates."""

    if stops is None or isinstance(stops, (str, bytes, Mapping)) or not isinstance(stops, SequenceABC):
        raise InvalidStopsError("Stops must be provided as a list")
    if len(stops) == 0:
        raise InvalidStopsError("No stops provided for route optimization")

    seen: set[str] = set()
    for position, stop in enumerate(stops):
        if not isinstance(stop, Stop):
            raise InvalidStopsError(f"Stop at position {position} is not a Stop")
        if not stop.stop_id:
            raise InvalidStopsError(f"Stop at position {position} has no identifier")
        if stop.stop_id in seen:
            raise InvalidStopsError(f"Duplicate stop identifier '{stop.stop_id}'")
        seen.add(stop.stop_id)
        _validate_coordinate(stop.coordinate, f"stop {stop.stop_id}")
    return list(stops)


def _build_matrix(
    stops: Sequence[Stop],
    service: DistanceService,
    mode: str,
    lazy: bool,
    max_concurrency: int,
    cancel_event: threading.Event | None,
) -> DistanceMatrix:
    if lazy:
        return LazyDistanceMatrix(stops, service, mode=mode, cancel_event=cancel_event)
    return build_distance_matrix(
        stops, service, mode=mode, max_concurrency=max_concurrency, cancel_event=cancel_event
    )


def plan_route(
    stops: Sequence[Stop],
    depot: Coordinate | None = None,
    *,
    service: DistanceService | None = None,
    mode: str | None = None,
    lazy: bool | None = None,
    two_opt: bool | None = None,
    max_concurrency: int | None = None,
    haversine_fallback: bool | None = None,
    return_to_depot: bool = False,
    cancel_event: threading.Event | None = None,
) -> Route:
    """Order `stops` for a single vehicle starting at `depot` (or at the first stop).

    Returns a Route that is complete (every stop visited) or partial (nearest
    neighbor ran out of reachable stops; compare `visited_count` with
    `requested_count`). Totals only count legs the distance service resolved.

    Raises InvalidStopsError before any lookup when the input is malformed, and
    NoDistanceDataError when no pair could be resolved and the haversine
    fallback is disabled.
    """
    stops = validate_stops(stops)
    if depot is not None:
        _validate_coordinate(depot, "depot")
        if any(stop.stop_id == DEPOT_STOP_ID for stop in stops):
            raise InvalidStopsError(f"Stop identifier '{DEPOT_STOP_ID}' is reserved for the depot")
        stops = [Stop(stop_id=DEPOT_STOP_ID, coordinate=depot, address="Depot"), *stops]

    mode = mode or settings.travel_mode
    lazy = settings.lazy_matrix if lazy is None else lazy
    two_opt = settings.improve_with_two_opt if two_opt is None else two_opt
    max_concurrency = max_concurrency or settings.max_concurrent_lookups
    haversine_fallback = settings.haversine_fallback if haversine_fallback is None else haversine_fallback
    service = service or get_distance_service()
    source = getattr(service, "name", type(service).__name__)

    matrix = _build_matrix(stops, service, mode, lazy, max_concurrency, cancel_event)
    order = nearest_neighbor_order(matrix)

    if not matrix.has_usable_data():
        errors = matrix.errors()
        upstream = errors[0] if errors else None
        if not haversine_fallback or isinstance(service, HaversineDistanceService):
            raise NoDistanceDataError("No usable distance data for any stop pair", detail=upstream)
        logger.warning(
            f"Every lookup via {source} failed ({upstream}). Falling back to haversine distance estimates."
        )
        service = HaversineDistanceService(speed_kmh=settings.average_speed_kmh)
        source = "haversine-fallback"
        matrix = build_distance_matrix(stops, service, mode=mode)
        order = nearest_neighbor_order(matrix)

    heuristic = "nearest_neighbor"
    if two_opt and len(order) > 3:
        order = improve_two_opt(matrix, order)
        heuristic = "nearest_neighbor+2opt"

    route = aggregate_route(stops, order, service, matrix=matrix, mode=mode, return_to_depot=return_to_depot)
    if not route.is_complete:
        logger.info(f"Partial route: visited {route.visited_count} of {route.requested_count} stops")

    route.metadata.update(
        {
            "distance_source": source,
            "heuristic": heuristic,
            "mode": mode,
            "matrix": "lazy" if isinstance(matrix, LazyDistanceMatrix) else "eager",
            "unreachable_pairs": matrix.unreachable_count(),
            "skipped_legs": route.skipped_legs,
            "has_depot": depot is not None,
        }
    )
    if isinstance(matrix, LazyDistanceMatrix):
        route.metadata["lookups"] = matrix.lookups
    return route


def stop_from_delivery(delivery: DeliveryModel) -> Stop:
    return Stop(
        stop_id=delivery.id,
        coordinate=Coordinate(delivery.coordinates.lat, delivery.coordinates.lng),
        address=delivery.address,
        customer=delivery.customer,
        items=tuple(delivery.items),
        time_slot=delivery.time_slot,
        driver=delivery.driver,
        status=delivery.status,
    )


def delivery_from_stop(stop: Stop) -> DeliveryModel:
    return DeliveryModel(
        id=stop.stop_id,
        address=stop.address,
        customer=stop.customer,
        items=list(stop.items),
        time_slot=stop.time_slot,
        driver=stop.driver,
        status=stop.status,
        coordinates=CoordinatesModel(lat=stop.coordinate.latitude, lng=stop.coordinate.longitude),
    )


def _resolve_depot(coordinates: CoordinatesModel | None, use_default: bool) -> Coordinate | None:
    if coordinates is not None:
        return Coordinate(coordinates.lat, coordinates.lng)
    if use_default:
        return Coordinate(settings.depot_latitude, settings.depot_longitude)
    return None


def _to_response(route: Route, depot: Coordinate | None) -> RouteOptimizationResponse:
    waypoints = [delivery_from_stop(stop) for stop in route.stops if depot is None or stop.stop_id != DEPOT_STOP_ID]
    requested = route.requested_count - (1 if depot is not None else 0)
    return RouteOptimizationResponse(
        status=route.status,
        total_distance=route.total_distance_km,
        total_duration=route.total_duration_min,
        waypoints=waypoints,
        depot=CoordinatesModel(lat=depot.latitude, lng=depot.longitude) if depot is not None else None,
        requested_count=requested,
        visited_count=len(waypoints),
        legs=[
            RouteLegModel(
                from_id=leg.from_stop_id,
                to_id=leg.to_stop_id,
                distance_km=leg.distance_km,
                duration_min=leg.duration_min,
                resolved=leg.resolved,
                geometry=[list(point) for point in leg.geometry] if leg.geometry else None,
            )
            for leg in route.legs
        ],
        metadata=dict(route.metadata),
    )


def _persist(route: Route, response: RouteOptimizationResponse, requested_by: str | None) -> None:
    try:
        from ...persistence.database import save_route_plan_to_database

        save_route_plan_to_database(response.model_dump(by_alias=True), requested_by=requested_by)
    except Exception as exc:
        # The plan is still valid when the row store is down.
        logger.error(f"Failed to save route plan to database: {exc}")

    try:
        storage = FileStorage()
        run_dir = storage.make_run_directory(prefix="route")
        storage.write_json(run_dir / "summary.json", route_to_json(route))
        storage.write_csv(run_dir / "stops.csv", route_to_csv(route))
    except Exception as exc:
        logger.error(f"Failed to write route plan outputs: {exc}")
        return
    response.metadata["output_dir"] = str(run_dir)


def _optimize(
    stops: list[Stop],
    depot: Coordinate | None,
    *,
    mode: str,
    return_to_depot: bool,
    persist: bool,
    requested_by: str | None,
) -> RouteOptimizationResponse:
    route = plan_route(stops, depot, mode=mode, return_to_depot=return_to_depot)
    response = _to_response(route, depot)
    if persist:
        _persist(route, response, requested_by)
    return response


def optimize_route(payload: RouteOptimizationRequest) -> RouteOptimizationResponse:
    """Plan a route over the deliveries posted by the client."""

    depot = _resolve_depot(payload.depot_coordinates, payload.use_default_depot)
    stops = [stop_from_delivery(delivery) for delivery in payload.deliveries]
    return _optimize(
        stops,
        depot,
        mode=payload.mode,
        return_to_depot=payload.return_to_depot,
        persist=payload.persist,
        requested_by=payload.requested_by,
    )


def optimize_stored_deliveries(payload: DeliveryRouteRequest) -> RouteOptimizationResponse:
    """Plan a route over deliveries loaded from the deliveries table."""

    stops = get_deliveries(payload.delivery_ids)
    found = {stop.stop_id for stop in stops}
    missing = [delivery_id for delivery_id in payload.delivery_ids if delivery_id not in found]
    if missing:
        raise InvalidStopsError("Deliveries not found or missing coordinates", detail=", ".join(missing))
    depot = _resolve_depot(payload.depot_coordinates, payload.use_default_depot)
    return _optimize(
        stops,
        depot,
        mode=payload.mode,
        return_to_depot=payload.return_to_depot,
        persist=payload.persist,
        requested_by=payload.requested_by,
    )
