"""Database persistence for planned routes."""

from __future__ import annotations

import logging
from typing import Any

from ..db.supabase import get_supabase_client

ROUTE_PLANS_TABLE = "route_plans"


def save_route_plan_to_database(route_response: dict[str, Any], requested_by: str | None = None) -> str | None:
    """Save a planned route to Supabase.

    Args:
        route_response: Serialized route optimization response (camelCase keys)
        requested_by: Optional person or system that asked for the plan

    Returns:
        The inserted row id, or None when Supabase is not configured.
    """
    supabase = get_supabase_client()
    if not supabase:
        logging.warning("Supabase not configured - route plan will only be saved to files")
        return None

    waypoints = route_response.get("waypoints", [])
    record = {
        "status": route_response.get("status"),
        "total_distance_km": route_response.get("totalDistance"),
        "total_duration_min": route_response.get("totalDuration"),
        "requested_count": route_response.get("requestedCount"),
        "visited_count": route_response.get("visitedCount"),
        "depot": route_response.get("depot"),
        "stop_ids": [waypoint.get("id") for waypoint in waypoints],
        "stops": waypoints,
        "metadata": route_response.get("metadata", {}),
        "requested_by": requested_by,
    }
    response = supabase.table(ROUTE_PLANS_TABLE).insert(record).execute()
    rows = response.data or []
    row_id = rows[0].get("id") if rows else None
    logging.info(f"Saved route plan {row_id} with {len(waypoints)} stops to database")
    return row_id


def get_route_plans_from_database(limit: int = 20) -> list[dict[str, Any]]:
    """Most recent route plans, newest first."""
    supabase = get_supabase_client()
    if not supabase:
        return []

    try:
        response = (
            supabase.table(ROUTE_PLANS_TABLE)
            .select("*")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []
    except Exception as e:
        logging.warning(f"Failed to retrieve route plans from database: {e}")
        return []
