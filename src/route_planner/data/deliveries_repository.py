"""Data access helpers for loading deliveries as route stops."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Optional, Sequence

from ..db.supabase import get_supabase_client
from ..models.domain import Coordinate, Stop

logger = logging.getLogger(__name__)

DELIVERIES_TABLE = "deliveries"


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    try:
        return float(str(value).replace(",", "")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None


def _row_coordinate(row: dict[str, Any]) -> Optional[Coordinate]:
    coordinates = row.get("coordinates")
    if isinstance(coordinates, str):
        try:
            coordinates = json.loads(coordinates)
        except json.JSONDecodeError:
            coordinates = None
    if isinstance(coordinates, dict):
        lat = _coerce_float(coordinates.get("lat", coordinates.get("latitude")))
        lon = _coerce_float(coordinates.get("lng", coordinates.get("longitude")))
    else:
        lat = _coerce_float(row.get("latitude", row.get("lat")))
        lon = _coerce_float(row.get("longitude", row.get("lng")))
    if lat is None or lon is None:
        return None
    return Coordinate(lat, lon)


def _row_items(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value)
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
            if isinstance(parsed, list):
                return tuple(str(item) for item in parsed)
        except json.JSONDecodeError:
            pass
        return tuple(item.strip() for item in value.split(",") if item.strip())
    return (str(value),)


def stop_from_row(row: dict[str, Any]) -> Optional[Stop]:
    """Convert a deliveries table row (snake_case columns) into a Stop.

    Returns None when the row carries no usable coordinates.
    """
    coordinate = _row_coordinate(row)
    if coordinate is None:
        return None
    return Stop(
        stop_id=str(row.get("id", "")).strip(),
        coordinate=coordinate,
        address=(row.get("address") or "").strip(),
        customer=row.get("customer") or row.get("customer_name"),
        items=_row_items(row.get("items")),
        time_slot=row.get("time_slot"),
        driver=row.get("driver"),
        status=row.get("status"),
        raw=row,
    )


def stops_from_rows(rows: Iterable[dict[str, Any]]) -> list[Stop]:
    stops: list[Stop] = []
    for row in rows:
        stop = stop_from_row(row)
        if stop is None:
            logger.warning(f"Delivery {row.get('id')} has no coordinates, skipping")
            continue
        stops.append(stop)
    return stops


def get_deliveries(delivery_ids: Sequence[str]) -> list[Stop]:
    """Load deliveries by id, in the order requested.

    Raises ConnectionError when the row store is not configured or the query fails.
    """
    supabase = get_supabase_client()
    if not supabase:
        raise ConnectionError("Supabase is not configured; cannot load deliveries.")

    unique_ids = list(dict.fromkeys(delivery_ids))
    try:
        response = supabase.table(DELIVERIES_TABLE).select("*").in_("id", unique_ids).execute()
    except Exception as e:
        raise ConnectionError(f"Failed to load deliveries: {e}") from e

    by_id = {stop.stop_id: stop for stop in stops_from_rows(response.data or [])}
    return [by_id[delivery_id] for delivery_id in unique_ids if delivery_id in by_id]
