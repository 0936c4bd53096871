import pytest

from route_planner.models.domain import Coordinate, Stop
from route_planner.services.routing.aggregator import aggregate_route
from route_planner.services.routing.errors import DistanceLookupError
from route_planner.services.routing.models import DistanceMatrix, DistanceResult


def _stop(sid: str, lon: float) -> Stop:
    return Stop(stop_id=sid, coordinate=Coordinate(0.0, lon))


STOPS = [_stop("depot", 0), _stop("S1", 1), _stop("S2", 2)]


class MatrixOnlyService:
    name = "matrix-only"

    def __init__(self) -> None:
        self.calls = 0

    def distance(self, origin, destination, mode="driving"):
        self.calls += 1
        gap = abs(destination.longitude - origin.longitude)
        return DistanceResult(distance_m=gap * 1000.0, duration_s=gap * 120.0)


class LegAwareService(MatrixOnlyService):
    name = "leg-aware"

    def __init__(self, failing_to: set[float] | None = None) -> None:
        super().__init__()
        self.failing_to = failing_to or set()
        self.leg_calls = 0

    def leg(self, origin, destination, mode="driving"):
        self.leg_calls += 1
        if destination.longitude in self.failing_to:
            raise DistanceLookupError("ZERO_RESULTS", origin=origin, destination=destination)
        gap = abs(destination.longitude - origin.longitude)
        return DistanceResult(
            distance_m=gap * 1500.0,
            duration_s=gap * 180.0,
            geometry=[(origin.latitude, origin.longitude), (destination.latitude, destination.longitude)],
        )


def test_totals_use_richer_leg_lookup():
    service = LegAwareService()
    route = aggregate_route(STOPS, [0, 1, 2], service)

    assert service.leg_calls == 2
    assert route.total_distance_km == pytest.approx(3.0)
    assert route.total_duration_min == pytest.approx(6.0)
    assert [leg.to_stop_id for leg in route.legs] == ["S1", "S2"]
    assert route.legs[0].geometry == [(0.0, 0), (0.0, 1)]
    assert route.is_complete
    assert route.status == "complete"


def test_failed_leg_is_skipped_and_totals_undercount():
    service = LegAwareService(failing_to={2})
    route = aggregate_route(STOPS, [0, 1, 2], service)

    assert route.total_distance_km == pytest.approx(1.5)
    assert route.skipped_legs == 1
    assert route.legs[1].resolved is False
    assert route.legs[1].distance_km == 0.0
    assert [stop.stop_id for stop in route.stops] == ["depot", "S1", "S2"]


def test_matrix_entries_are_reused_without_leg_lookup():
    service = MatrixOnlyService()
    matrix = DistanceMatrix.from_lists(
        [[0, 1000, 2000], [1000, 0, 1000], [2000, 1000, 0]],
        [[0, 60, 120], [60, 0, 60], [120, 60, 0]],
    )
    route = aggregate_route(STOPS, [0, 1, 2], service, matrix=matrix)

    assert service.calls == 0
    assert route.total_distance_km == pytest.approx(2.0)
    assert route.total_duration_min == pytest.approx(2.0)


def test_partial_order_reports_partial_route():
    route = aggregate_route(STOPS, [0, 1], MatrixOnlyService())

    assert route.visited_count == 2
    assert route.requested_count == 3
    assert route.status == "partial"


def test_return_to_depot_adds_closing_leg():
    route = aggregate_route(STOPS, [0, 1, 2], MatrixOnlyService(), return_to_depot=True)

    assert len(route.legs) == 3
    assert route.legs[-1].to_stop_id == "depot"
    assert route.total_distance_km == pytest.approx(4.0)


def test_return_to_depot_ignored_for_partial_route():
    route = aggregate_route(STOPS, [0, 1], MatrixOnlyService(), return_to_depot=True)
    assert len(route.legs) == 1


def test_single_stop_route_has_no_legs():
    route = aggregate_route(STOPS[:1], [0], MatrixOnlyService())
    assert route.legs == []
    assert route.total_distance_km == 0.0
    assert route.total_duration_min == 0.0
