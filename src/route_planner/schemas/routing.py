"""Route optimization request/response schemas."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class CoordinatesModel(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class DeliveryModel(BaseModel):
    """A delivery as the web client and the deliveries table describe it."""

    id: str = Field(..., min_length=1)
    address: str = ""
    customer: Optional[str] = None
    items: List[str] = Field(default_factory=list)
    time_slot: Optional[str] = None
    driver: Optional[str] = None
    status: Optional[str] = None
    coordinates: CoordinatesModel


class RouteOptimizationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    deliveries: List[DeliveryModel] = Field(..., min_length=1)
    depot_coordinates: Optional[CoordinatesModel] = Field(
        default=None,
        alias="depotCoordinates",
        description="Start location. When omitted the first delivery is the start stop.",
    )
    use_default_depot: bool = Field(
        default=False,
        alias="useDefaultDepot",
        description="Start from the configured depot when no depot coordinates are given.",
    )
    mode: Literal["driving", "walking", "bicycling"] = "driving"
    return_to_depot: bool = Field(default=False, alias="returnToDepot")
    persist: bool = False
    requested_by: Optional[str] = Field(default=None, alias="requestedBy")


class DeliveryRouteRequest(BaseModel):
    """Plan over deliveries stored in the deliveries table."""

    model_config = ConfigDict(populate_by_name=True)

    delivery_ids: List[str] = Field(..., min_length=1, alias="deliveryIds")
    depot_coordinates: Optional[CoordinatesModel] = Field(default=None, alias="depotCoordinates")
    use_default_depot: bool = Field(default=True, alias="useDefaultDepot")
    mode: Literal["driving", "walking", "bicycling"] = "driving"
    return_to_depot: bool = Field(default=False, alias="returnToDepot")
    persist: bool = False
    requested_by: Optional[str] = Field(default=None, alias="requestedBy")


class RouteLegModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_id: str = Field(..., alias="from")
    to_id: str = Field(..., alias="to")
    distance_km: float = Field(..., alias="distanceKm")
    duration_min: float = Field(..., alias="durationMin")
    resolved: bool
    geometry: Optional[List[List[float]]] = None


class RouteOptimizationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Literal["complete", "partial"]
    total_distance: float = Field(..., alias="totalDistance", description="Kilometers over resolved legs.")
    total_duration: float = Field(..., alias="totalDuration", description="Minutes over resolved legs.")
    waypoints: List[DeliveryModel]
    depot: Optional[CoordinatesModel] = None
    requested_count: int = Field(..., alias="requestedCount")
    visited_count: int = Field(..., alias="visitedCount")
    legs: List[RouteLegModel] = Field(default_factory=list)
    metadata: dict = Field(default_factory=dict)
