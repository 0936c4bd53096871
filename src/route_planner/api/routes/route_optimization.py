"""Route optimization endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from ...persistence.database import get_route_plans_from_database
from ...schemas.routing import DeliveryRouteRequest, RouteOptimizationRequest, RouteOptimizationResponse
from ...services.routing.errors import InvalidStopsError, NoDistanceDataError, PlanningCancelled
from ...services.routing.service import optimize_route, optimize_stored_deliveries

router = APIRouter(prefix="/route-optimization", tags=["route-optimization"])


def _planning_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, InvalidStopsError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NoDistanceDataError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": exc.message, "details": exc.detail},
        )
    if isinstance(exc, (PlanningCancelled, ConnectionError)):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    logging.exception(f"Route optimization error: {exc}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "Failed to optimize route", "details": str(exc)},
    )


@router.post("", response_model=RouteOptimizationResponse, status_code=status.HTTP_200_OK)
def optimize(payload: RouteOptimizationRequest) -> RouteOptimizationResponse:
    try:
        return optimize_route(payload)
    except Exception as exc:
        raise _planning_http_error(exc) from exc


@router.post("/deliveries", response_model=RouteOptimizationResponse, status_code=status.HTTP_200_OK)
def optimize_deliveries(payload: DeliveryRouteRequest) -> RouteOptimizationResponse:
    """Plan over deliveries already stored in the deliveries table."""
    try:
        return optimize_stored_deliveries(payload)
    except Exception as exc:
        raise _planning_http_error(exc) from exc


@router.get("/history", status_code=status.HTTP_200_OK)
def history(limit: int = Query(default=20, ge=1, le=200)) -> dict:
    """Recently persisted route plans."""
    plans = get_route_plans_from_database(limit=limit)
    return {"count": len(plans), "plans": plans}
