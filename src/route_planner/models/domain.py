"""Domain models for coordinates and delivery stops."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class Stop:
    """A delivery stop to visit, immutable for the duration of a planning call."""

    stop_id: str
    coordinate: Coordinate
    address: str = ""
    customer: Optional[str] = None
    items: tuple[str, ...] = ()
    time_slot: Optional[str] = None
    driver: Optional[str] = None
    status: Optional[str] = None
    raw: dict = field(default_factory=dict, compare=False, hash=False)
