"""Errors raised by the route planner and its distance services."""

from __future__ import annotations

from typing import Optional

from ...models.domain import Coordinate


class DistanceLookupError(Exception):
    """A single distance lookup failed (transport error, timeout, non-OK status, no route)."""

    def __init__(
        self,
        message: str,
        origin: Optional[Coordinate] = None,
        destination: Optional[Coordinate] = None,
        detail: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.origin = origin
        self.destination = destination
        self.detail = detail


class PlanningError(Exception):
    """Failure surfaced to the caller of the planner."""

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message} ({self.detail})"
        return self.message


class InvalidStopsError(PlanningError, ValueError):
    """The stop list is empty, not a sequence, or holds invalid coordinates."""


class NoDistanceDataError(PlanningError):
    """Every off-diagonal lookup failed, so there is nothing to route with."""


class PlanningCancelled(PlanningError):
    """The matrix build was cancelled before it finished."""
