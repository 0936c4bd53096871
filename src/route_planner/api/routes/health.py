"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/distance", status_code=status.HTTP_200_OK)
def health_distance() -> dict:
    """Probe the configured distance provider."""
    provider = settings.distance_provider
    try:
        if provider == "osrm":
            from ...services.routing.osrm_client import check_health

            healthy = check_health()
        elif provider == "google":
            from ...services.routing.google_client import check_health

            healthy = check_health()
        else:
            healthy = True
        return {"service": provider, "healthy": healthy}
    except Exception as e:
        return {"service": provider, "healthy": False, "error": str(e)}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check database connection and deliveries table access."""
    from ...db.supabase import get_supabase_client

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set ROUTE_PLANNER_SUPABASE_URL and ROUTE_PLANNER_SUPABASE_KEY environment variables.",
        }

    try:
        supabase.table("deliveries").select("id", count="exact").limit(1).execute()
        return {"configured": True, "connected": True, "message": "Database connected."}
    except Exception as exc:
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
