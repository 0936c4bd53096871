import threading

import pytest

from route_planner.config import settings
from route_planner.models.domain import Coordinate, Stop
from route_planner.services.routing import service as routing_service
from route_planner.services.routing.distance import HaversineDistanceService
from route_planner.services.routing.errors import (
    DistanceLookupError,
    InvalidStopsError,
    NoDistanceDataError,
    PlanningCancelled,
)
from route_planner.services.routing.models import DistanceResult
from route_planner.services.routing.service import plan_route


def _stop(sid: str, lat: float, lon: float) -> Stop:
    return Stop(stop_id=sid, coordinate=Coordinate(lat, lon), address=f"{sid} avenue")


class CountingService:
    name = "counting"

    def __init__(self, unreachable_ids: set[str] | None = None, fail_all: bool = False) -> None:
        self.calls = 0
        self.fail_all = fail_all
        self.unreachable = unreachable_ids or set()
        self._inner = HaversineDistanceService()

    def distance(self, origin, destination, mode="driving"):
        self.calls += 1
        if self.fail_all:
            raise DistanceLookupError("OVER_QUERY_LIMIT", origin=origin, destination=destination, detail="quota")
        if (destination.latitude, destination.longitude) in self.unreachable:
            raise DistanceLookupError("NOT_FOUND", origin=origin, destination=destination)
        return self._inner.distance(origin, destination, mode)


@pytest.fixture(autouse=True)
def planner_defaults(monkeypatch):
    monkeypatch.setattr(settings, "lazy_matrix", False)
    monkeypatch.setattr(settings, "improve_with_two_opt", False)
    monkeypatch.setattr(settings, "haversine_fallback", True)
    monkeypatch.setattr(settings, "max_concurrent_lookups", 1)


def test_nearest_neighbor_example_with_depot():
    stops = [_stop("far", 10, 10), _stop("two", 0, 2), _stop("one", 0, 1)]
    service = CountingService()

    route = plan_route(stops, Coordinate(0, 0), service=service)

    assert [stop.stop_id for stop in route.stops] == ["depot", "one", "two", "far"]
    assert route.is_complete
    assert service.calls == 12
    assert route.total_distance_km > 0
    assert route.metadata["distance_source"] == "counting"
    assert route.metadata["has_depot"] is True


def test_first_stop_is_implicit_depot():
    stops = [_stop("start", 0, 0), _stop("far", 0, 5), _stop("near", 0, 1)]
    route = plan_route(stops, service=CountingService())

    assert [stop.stop_id for stop in route.stops] == ["start", "near", "far"]
    assert route.requested_count == 3


@pytest.mark.parametrize(
    "stops",
    [
        [],
        None,
        "not a list",
        {"id": "x"},
        [{"id": "x", "coordinates": {"lat": 1, "lng": 2}}],
        [Stop(stop_id="x", coordinate=Coordinate(float("nan"), 0))],
        [Stop(stop_id="x", coordinate=Coordinate(91, 0))],
        [Stop(stop_id="x", coordinate=Coordinate(0, "10"))],
        [Stop(stop_id="", coordinate=Coordinate(0, 0))],
        [_stop("dup", 0, 0), _stop("dup", 0, 1)],
    ],
)
def test_invalid_input_fails_before_any_lookup(stops):
    service = CountingService()
    with pytest.raises(InvalidStopsError):
        plan_route(stops, service=service)
    assert service.calls == 0


def test_invalid_depot_is_rejected():
    service = CountingService()
    with pytest.raises(InvalidStopsError):
        plan_route([_stop("a", 0, 1)], Coordinate(0, 200), service=service)
    assert service.calls == 0


def test_invalid_stops_error_is_a_value_error():
    with pytest.raises(ValueError):
        plan_route([], service=CountingService())


def test_unreachable_stop_yields_partial_route():
    stops = [_stop("a", 0, 1), _stop("b", 0, 2), _stop("island", 5, 5)]
    service = CountingService(unreachable_ids={(5, 5)})

    route = plan_route(stops, Coordinate(0, 0), service=service)

    assert [stop.stop_id for stop in route.stops] == ["depot", "a", "b"]
    assert not route.is_complete
    assert route.status == "partial"
    assert route.metadata["unreachable_pairs"] == 3


def test_total_failure_raises_when_fallback_disabled():
    service = CountingService(fail_all=True)
    with pytest.raises(NoDistanceDataError) as excinfo:
        plan_route([_stop("a", 0, 1), _stop("b", 0, 2)], Coordinate(0, 0), service=service, haversine_fallback=False)

    assert "quota" in str(excinfo.value)
    assert service.calls == 6


def test_total_failure_falls_back_to_haversine():
    stops = [_stop("b", 0, 2), _stop("a", 0, 1)]
    route = plan_route(stops, Coordinate(0, 0), service=CountingService(fail_all=True))

    assert [stop.stop_id for stop in route.stops] == ["depot", "a", "b"]
    assert route.metadata["distance_source"] == "haversine-fallback"
    assert route.total_distance_km == pytest.approx(222.39, abs=0.01)
    assert route.total_duration_min == pytest.approx(route.total_distance_km * 2)


def test_single_stop_route_without_depot():
    route = plan_route([_stop("only", 1, 1)], service=CountingService())
    assert [stop.stop_id for stop in route.stops] == ["only"]
    assert route.is_complete
    assert route.total_distance_km == 0.0


def test_lazy_matrix_makes_fewer_lookups():
    stops = [_stop(f"s{i}", 0, i) for i in range(1, 6)]
    eager, lazy = CountingService(), CountingService()

    eager_route = plan_route(stops, Coordinate(0, 0), service=eager)
    lazy_route = plan_route(stops, Coordinate(0, 0), service=lazy, lazy=True)

    assert [s.stop_id for s in lazy_route.stops] == [s.stop_id for s in eager_route.stops]
    assert eager.calls == 30
    assert lazy.calls < eager.calls
    assert lazy_route.metadata["matrix"] == "lazy"


def test_two_opt_never_lengthens_the_route():
    stops = [_stop("a", 0, 1), _stop("b", 0, -2), _stop("c", 0, 3), _stop("d", 1, -1)]
    plain = plan_route(stops, Coordinate(0, 0), service=HaversineDistanceService(), two_opt=False)
    improved = plan_route(stops, Coordinate(0, 0), service=HaversineDistanceService(), two_opt=True)

    assert improved.total_distance_km <= plain.total_distance_km + 1e-9
    assert sorted(s.stop_id for s in improved.stops) == sorted(s.stop_id for s in plain.stops)
    assert improved.metadata["heuristic"] == "nearest_neighbor+2opt"


def test_default_service_comes_from_provider(monkeypatch):
    service = CountingService()
    monkeypatch.setattr(routing_service, "get_distance_service", lambda: service)

    plan_route([_stop("a", 0, 1)], Coordinate(0, 0))

    assert service.calls == 2


def test_depot_identifier_is_reserved():
    with pytest.raises(InvalidStopsError):
        plan_route([_stop("depot", 0, 1)], Coordinate(0, 0), service=CountingService())


def test_route_stops_are_subset_without_duplicates():
    stops = [_stop(f"s{i}", (i * 7) % 5, (i * 3) % 11) for i in range(8)]
    service = CountingService(unreachable_ids={(stops[3].coordinate.latitude, stops[3].coordinate.longitude)})

    route = plan_route(stops, Coordinate(0, 0), service=service)
    ids = [stop.stop_id for stop in route.stops]

    assert len(ids) == len(set(ids))
    assert set(ids) <= {"depot", *(stop.stop_id for stop in stops)}


def test_cancelled_lazy_plan_raises():
    service = CountingService()
    cancel = threading.Event()
    cancel.set()
    stops = [_stop("a", 0, 1), _stop("b", 0, 2), _stop("c", 0, 3)]

    with pytest.raises(PlanningCancelled):
        plan_route(stops, Coordinate(0, 0), service=service, lazy=True, cancel_event=cancel)
    assert service.calls == 0
