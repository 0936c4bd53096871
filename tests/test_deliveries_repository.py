import pytest

from route_planner.data import deliveries_repository
from route_planner.data.deliveries_repository import get_deliveries, stop_from_row, stops_from_rows


def test_stop_from_row_with_nested_coordinates():
    row = {
        "id": "D-1",
        "address": " 12 Elm St ",
        "customer": "Acme",
        "items": ["crate", "pallet"],
        "time_slot": "08:00-10:00",
        "driver": "Lee",
        "status": "scheduled",
        "coordinates": {"lat": "40.71", "lng": -74.0},
    }

    stop = stop_from_row(row)

    assert stop.stop_id == "D-1"
    assert stop.address == "12 Elm St"
    assert stop.coordinate.latitude == 40.71
    assert stop.coordinate.longitude == -74.0
    assert stop.items == ("crate", "pallet")
    assert stop.time_slot == "08:00-10:00"
    assert stop.raw is row


def test_stop_from_row_with_flat_columns_and_json_items():
    stop = stop_from_row({"id": 7, "latitude": 1.5, "longitude": 2.5, "items": '["a", "b"]'})

    assert stop.stop_id == "7"
    assert stop.coordinate.as_tuple() == (1.5, 2.5)
    assert stop.items == ("a", "b")


def test_stop_from_row_with_json_coordinates_and_comma_items():
    stop = stop_from_row({"id": "x", "coordinates": '{"lat": 3, "lng": 4}', "items": "a, b"})

    assert stop.coordinate.as_tuple() == (3.0, 4.0)
    assert stop.items == ("a", "b")


def test_rows_without_coordinates_are_skipped():
    stops = stops_from_rows([{"id": "ok", "lat": 1, "lng": 1}, {"id": "bad", "coordinates": None}])
    assert [stop.stop_id for stop in stops] == ["ok"]


class _Query:
    def __init__(self, rows):
        self.rows = rows
        self.filters = None

    def select(self, columns):
        return self

    def in_(self, column, values):
        self.filters = (column, list(values))
        return self

    def execute(self):
        column, values = self.filters
        return type("Response", (), {"data": [row for row in self.rows if row[column] in values]})()


class _FakeSupabase:
    def __init__(self, rows):
        self.query = _Query(rows)

    def table(self, name):
        assert name == "deliveries"
        return self.query


def test_get_deliveries_keeps_requested_order(monkeypatch):
    rows = [
        {"id": "a", "coordinates": {"lat": 0, "lng": 1}},
        {"id": "b", "coordinates": {"lat": 0, "lng": 2}},
    ]
    monkeypatch.setattr(deliveries_repository, "get_supabase_client", lambda: _FakeSupabase(rows))

    stops = get_deliveries(["b", "a", "b", "zzz"])

    assert [stop.stop_id for stop in stops] == ["b", "a"]


def test_get_deliveries_without_supabase(monkeypatch):
    monkeypatch.setattr(deliveries_repository, "get_supabase_client", lambda: None)
    with pytest.raises(ConnectionError):
        get_deliveries(["a"])
