"""Visiting-order heuristics over a distance matrix.

Nearest-neighbor is greedy: it never backtracks, so the order it returns is
a reasonable tour, not a minimal one. `improve_two_opt` can shorten it.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from .models import DistanceMatrix

logger = logging.getLogger(__name__)


def nearest_neighbor_order(matrix: DistanceMatrix, start: int = 0) -> list[int]:
    """Return matrix indices in visiting order, beginning at `start`.

    From the last added stop, the unvisited stop with the smallest distance
    is chosen; ties go to the lowest index. Unreachable candidates are never
    chosen, so when every remaining candidate is unreachable the order stops
    early and covers fewer than `len(matrix)` stops.
    """
    size = len(matrix)
    if size == 0:
        return []
    if not 0 <= start < size:
        raise IndexError(f"Start index {start} outside matrix of size {size}.")

    visited = {start}
    order = [start]
    current = start

    while len(order) < size:
        nearest_index = -1
        nearest_distance = math.inf
        for candidate in range(size):
            if candidate in visited:
                continue
            entry = matrix.entry(current, candidate)
            if not entry.reachable:
                continue
            if entry.distance_m < nearest_distance:
                nearest_distance = entry.distance_m
                nearest_index = candidate
        if nearest_index == -1:
            logger.info(
                f"Nearest-neighbor stopped early at stop index {current}: "
                f"visited {len(order)} of {size} stops, no reachable candidate left"
            )
            break
        visited.add(nearest_index)
        order.append(nearest_index)
        current = nearest_index

    return order


def path_distance(matrix: DistanceMatrix, order: Sequence[int]) -> float:
    """Sum of matrix distances along an open path; inf if any leg is unreachable."""
    total = 0.0
    for origin, destination in zip(order, order[1:]):
        entry = matrix.entry(origin, destination)
        if not entry.reachable:
            return math.inf
        total += entry.distance_m
    return total


def improve_two_opt(matrix: DistanceMatrix, order: Sequence[int], max_passes: int = 50) -> list[int]:
    """Reverse sub-paths while doing so shortens the route.

    The first stop stays fixed and the path is open (no return leg). Reversed
    segments are re-costed in full because the matrix need not be symmetric.
    """
    best = list(order)
    if len(best) < 4:
        return best
    best_distance = path_distance(matrix, best)
    if math.isinf(best_distance):
        return best

    for _ in range(max_passes):
        improved = False
        for i in range(1, len(best) - 1):
            for k in range(i + 1, len(best)):
                candidate = best[:i] + best[i:k + 1][::-1] + best[k + 1:]
                candidate_distance = path_distance(matrix, candidate)
                if candidate_distance < best_distance - 1e-9:
                    best, best_distance = candidate, candidate_distance
                    improved = True
        if not improved:
            break
    return best
