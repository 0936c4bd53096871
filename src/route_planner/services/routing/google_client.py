"""Google Maps Distance Matrix / Directions client."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from ...config import settings
from ...models.domain import Coordinate
from .errors import DistanceLookupError
from .models import DistanceResult
from .osrm_client import decode_polyline

logger = logging.getLogger(__name__)

_SUPPORTED_MODES = {"driving", "walking", "bicycling", "transit"}


def _latlng(coordinate: Coordinate) -> str:
    return f"{coordinate.latitude},{coordinate.longitude}"


class GoogleMapsClient:
    """Google Maps implementation of the distance service.

    `distance` uses the Distance Matrix API for one origin/destination pair;
    `leg` uses the Directions API, which also returns the path geometry.
    """

    name = "google"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_maps_api_key
        if not self.api_key:
            raise ValueError("Google Maps API key is not configured.")
        self.base_url = (base_url or settings.google_maps_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.distance_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self._transport = transport

    def _request(self, endpoint: str, params: dict[str, str], origin: Coordinate, destination: Coordinate) -> dict[str, Any]:
        url = f"{self.base_url}/{endpoint}/json"
        params = {**params, "key": self.api_key}
        with httpx.Client(timeout=httpx.Timeout(self.timeout), transport=self._transport) as client:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    break
                except (httpx.HTTPError, ValueError) as e:
                    attempt += 1
                    client_error = isinstance(e, httpx.HTTPStatusError) and e.response.status_code < 500
                    if attempt > self.max_retries or client_error:
                        raise DistanceLookupError(
                            f"Google Maps {endpoint} request failed",
                            origin=origin,
                            destination=destination,
                            detail=str(e),
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Google Maps request failed, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)

        status = data.get("status")
        if status != "OK":
            raise DistanceLookupError(
                f"Google Maps API Error: {status}",
                origin=origin,
                destination=destination,
                detail=data.get("error_message"),
            )
        return data

    def distance(self, origin: Coordinate, destination: Coordinate, mode: str = "driving") -> DistanceResult:
        params = {
            "origins": _latlng(origin),
            "destinations": _latlng(destination),
            "mode": mode if mode in _SUPPORTED_MODES else "driving",
        }
        data = self._request("distancematrix", params, origin, destination)
        try:
            element = data["rows"][0]["elements"][0]
            if element.get("status") != "OK":
                raise DistanceLookupError(
                    f"No route between points: {element.get('status')}", origin=origin, destination=destination
                )
            distance = float(element["distance"]["value"])
            duration = float(element["duration"]["value"])
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise DistanceLookupError(
                "Malformed Distance Matrix response", origin=origin, destination=destination, detail=str(e)
            ) from e
        return DistanceResult(distance_m=distance, duration_s=duration)

    def leg(self, origin: Coordinate, destination: Coordinate, mode: str = "driving") -> DistanceResult:
        params = {
            "origin": _latlng(origin),
            "destination": _latlng(destination),
            "mode": mode if mode in _SUPPORTED_MODES else "driving",
        }
        data = self._request("directions", params, origin, destination)
        try:
            route = data["routes"][0]
            legs = route["legs"]
            distance = sum(float(leg["distance"]["value"]) for leg in legs)
            duration = sum(float(leg["duration"]["value"]) for leg in legs)
        except (KeyError, IndexError, TypeError) as e:
            raise DistanceLookupError(
                "Malformed Directions response", origin=origin, destination=destination, detail=str(e)
            ) from e
        points = (route.get("overview_polyline") or {}).get("points")
        return DistanceResult(
            distance_m=distance,
            duration_s=duration,
            geometry=decode_polyline(points) if points else None,
        )


def check_health(api_key: str | None = None) -> bool:
    """Probe the Distance Matrix API with a short, known pair."""
    key = api_key or settings.google_maps_api_key
    if not key:
        return False
    try:
        client = GoogleMapsClient(api_key=key, timeout=5.0, max_retries=0)
        client.distance(Coordinate(52.517037, 13.388860), Coordinate(52.496891, 13.385983))
        return True
    except DistanceLookupError:
        return False
