"""Routing domain models."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional

from ...models.domain import Stop


@dataclass(frozen=True, slots=True)
class DistanceResult:
    """Travel distance (meters) and duration (seconds) between two coordinates."""

    distance_m: float
    duration_s: float
    geometry: Optional[List[tuple[float, float]]] = None


@dataclass(frozen=True, slots=True)
class MatrixEntry:
    distance_m: float
    duration_s: float
    reachable: bool = True
    error: Optional[str] = None


UNREACHABLE = MatrixEntry(distance_m=math.inf, duration_s=math.inf, reachable=False)
ZERO = MatrixEntry(distance_m=0.0, duration_s=0.0)


def unreachable(error: str | None = None) -> MatrixEntry:
    if error is None:
        return UNREACHABLE
    return MatrixEntry(distance_m=math.inf, duration_s=math.inf, reachable=False, error=error)


class DistanceMatrix:
    """Square stops x stops matrix of MatrixEntry values.

    The diagonal is always ZERO and never looked up.
    """

    def __init__(self, size: int, entries: list[list[MatrixEntry]] | None = None) -> None:
        if entries is None:
            entries = [[ZERO if i == j else UNREACHABLE for j in range(size)] for i in range(size)]
        if len(entries) != size or any(len(row) != size for row in entries):
            raise ValueError(f"Distance matrix must be {size}x{size}.")
        self.size = size
        self._entries = entries

    def __len__(self) -> int:
        return self.size

    def entry(self, origin: int, destination: int) -> MatrixEntry:
        if origin == destination:
            return ZERO
        return self._entries[origin][destination]

    def set(self, origin: int, destination: int, value: MatrixEntry) -> None:
        if origin == destination:
            raise ValueError("Diagonal entries are fixed at zero.")
        self._entries[origin][destination] = value

    def distance(self, origin: int, destination: int) -> float:
        return self.entry(origin, destination).distance_m

    def off_diagonal(self):
        for i in range(self.size):
            for j in range(self.size):
                if i != j:
                    yield i, j, self.entry(i, j)

    def unreachable_count(self) -> int:
        return sum(1 for _, _, value in self.off_diagonal() if not value.reachable)

    def has_usable_data(self) -> bool:
        """True when at least one off-diagonal entry is reachable (or there are no pairs at all)."""
        if self.size < 2:
            return True
        return any(value.reachable for _, _, value in self.off_diagonal())

    def errors(self) -> list[str]:
        return [value.error for _, _, value in self.off_diagonal() if value.error]

    @classmethod
    def from_lists(cls, distances: list[list[Optional[float]]], durations: list[list[Optional[float]]] | None = None) -> "DistanceMatrix":
        """Build a matrix from raw meter/second lists; None marks an unreachable pair."""
        size = len(distances)
        matrix = cls(size)
        for i in range(size):
            for j in range(size):
                if i == j:
                    continue
                distance = distances[i][j]
                duration = durations[i][j] if durations is not None else 0.0
                if distance is None or duration is None or math.isinf(distance):
                    matrix.set(i, j, UNREACHABLE)
                else:
                    matrix.set(i, j, MatrixEntry(distance_m=float(distance), duration_s=float(duration)))
        return matrix


@dataclass(slots=True)
class RouteLeg:
    from_stop_id: str
    to_stop_id: str
    distance_km: float
    duration_min: float
    resolved: bool = True
    geometry: Optional[List[tuple[float, float]]] = None


@dataclass(slots=True)
class Route:
    """Ordered stops actually visited plus aggregate totals.

    Totals are summed over resolved legs only, so they are a lower bound when
    any leg lookup failed. The order comes from a greedy heuristic and is not
    guaranteed to be the shortest possible tour.
    """

    stops: List[Stop]
    total_distance_km: float
    total_duration_min: float
    requested_count: int
    legs: List[RouteLeg] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)

    @property
    def visited_count(self) -> int:
        return len(self.stops)

    @property
    def is_complete(self) -> bool:
        return self.visited_count == self.requested_count

    @property
    def status(self) -> str:
        return "complete" if self.is_complete else "partial"

    @property
    def skipped_legs(self) -> int:
        return sum(1 for leg in self.legs if not leg.resolved)
