"""HTTP client for interacting with OSRM services."""

from __future__ import annotations

import logging
import time
from typing import Any, Sequence

import httpx

from ...config import settings
from ...models.domain import Coordinate
from .errors import DistanceLookupError
from .models import DistanceResult

logger = logging.getLogger(__name__)

_MODE_TO_PROFILE = {
    "walking": "foot",
    "bicycling": "bike",
}


class OSRMClient:
    """OSRM implementation of the distance service.

    `distance` asks the table endpoint for a single origin/destination pair;
    `leg` asks the route endpoint for the street path with its geometry.
    """

    name = "osrm"

    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.distance_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        # One client per call so lookups can run from worker threads.
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 10.0)),
            transport=self._transport,
        )

    def _profile_for(self, mode: str) -> str:
        return _MODE_TO_PROFILE.get(mode, self.profile)

    def _get(self, url: str, params: dict[str, str], origin: Coordinate, destination: Coordinate) -> dict[str, Any]:
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    if data.get("code") != "Ok":
                        message = data.get("message") or data.get("code") or "Unknown OSRM error"
                        # A non-OK code is an answer, not a transport problem: do not retry.
                        raise DistanceLookupError(
                            f"OSRM returned {data.get('code')!r}",
                            origin=origin,
                            destination=destination,
                            detail=message,
                        )
                    return data
                except DistanceLookupError:
                    raise
                except httpx.HTTPStatusError as e:
                    attempt += 1
                    if attempt > self.max_retries or e.response.status_code < 500:
                        raise DistanceLookupError(
                            f"OSRM request failed with HTTP {e.response.status_code}",
                            origin=origin,
                            destination=destination,
                            detail=str(e),
                        ) from e
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OSRM request timed out after {self.max_retries} retries: {e}")
                        raise DistanceLookupError(
                            "OSRM request timed out", origin=origin, destination=destination, detail=str(e)
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM request timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.HTTPError, ValueError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise DistanceLookupError(
                            f"Failed to reach OSRM service at {self.base_url}",
                            origin=origin,
                            destination=destination,
                            detail=str(e),
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
        finally:
            client.close()

    def distance(self, origin: Coordinate, destination: Coordinate, mode: str = "driving") -> DistanceResult:
        coordinate_str = format_coordinates([origin, destination])
        url = f"{self.base_url}/table/v1/{self._profile_for(mode)}/{coordinate_str}"
        params = {
            "annotations": "duration,distance",
            "sources": "0",
            "destinations": "1",
        }
        data = self._get(url, params, origin, destination)
        try:
            distance = data["distances"][0][0]
            duration = data["durations"][0][0]
        except (KeyError, IndexError, TypeError) as e:
            raise DistanceLookupError(
                "OSRM response missing durations/distances", origin=origin, destination=destination, detail=str(e)
            ) from e
        if distance is None or duration is None:
            raise DistanceLookupError("OSRM found no route", origin=origin, destination=destination)
        return DistanceResult(distance_m=float(distance), duration_s=float(duration))

    def leg(self, origin: Coordinate, destination: Coordinate, mode: str = "driving") -> DistanceResult:
        coordinate_str = format_coordinates([origin, destination])
        url = f"{self.base_url}/route/v1/{self._profile_for(mode)}/{coordinate_str}"
        params = {
            "overview": "full",
            "geometries": "polyline",
            "steps": "false",
        }
        data = self._get(url, params, origin, destination)
        routes = data.get("routes") or []
        if not routes:
            raise DistanceLookupError("OSRM found no route", origin=origin, destination=destination)
        best = routes[0]
        geometry = best.get("geometry")
        return DistanceResult(
            distance_m=float(best.get("distance", 0.0)),
            duration_s=float(best.get("duration", 0.0)),
            geometry=decode_polyline(geometry) if isinstance(geometry, str) else None,
        )


def format_coordinates(coordinates: Sequence[Coordinate]) -> str:
    """OSRM expects "lon,lat;lon,lat;..."."""
    return ";".join(f"{c.longitude},{c.latitude}" for c in coordinates)


def decode_polyline(polyline: str) -> list[tuple[float, float]]:
    """Decode Google polyline string to list of (lat, lon) coordinates.

    OSRM and Google Directions both use this encoding for route geometry.
    """
    coordinates = []
    index = 0
    lat = 0
    lon = 0

    while index < len(polyline):
        deltas = []
        for _ in range(2):
            shift = 0
            result = 0
            while True:
                b = ord(polyline[index]) - 63
                index += 1
                result |= (b & 0x1f) << shift
                shift += 5
                if b < 0x20:
                    break
            deltas.append(~(result >> 1) if (result & 1) else (result >> 1))
        lat += deltas[0]
        lon += deltas[1]
        coordinates.append((lat / 1e5, lon / 1e5))

    return coordinates


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM service health by making a simple table request.

    Public OSRM endpoints may not have a /health endpoint, so we test
    connectivity by making a minimal table request with two coordinates.
    """
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        test_coords = "13.388860,52.517037;13.385983,52.496891"
        url = f"{base.rstrip('/')}/table/v1/{settings.osrm_profile}/{test_coords}"
        response = httpx.get(url, params={"annotations": "duration"}, timeout=5.0)
        response.raise_for_status()
        data = response.json()
        return "durations" in data and isinstance(data.get("durations"), list)
    except (httpx.HTTPError, ValueError):
        return False
