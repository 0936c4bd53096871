"""Distance matrix construction over a list of stops."""

from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Sequence

from ...models.domain import Stop
from .distance import DEFAULT_MODE, DistanceService
from .errors import DistanceLookupError, PlanningCancelled
from .models import DistanceMatrix, MatrixEntry, unreachable

logger = logging.getLogger(__name__)


def lookup_entry(service: DistanceService, origin: Stop, destination: Stop, mode: str = DEFAULT_MODE) -> MatrixEntry:
    """Query one ordered pair; any failure becomes an unreachable entry."""
    try:
        result = service.distance(origin.coordinate, destination.coordinate, mode)
    except DistanceLookupError as exc:
        detail = f"{exc}: {exc.detail}" if exc.detail else str(exc)
        logger.warning(f"Distance lookup {origin.stop_id} -> {destination.stop_id} failed: {detail}")
        return unreachable(detail)
    except Exception as exc:
        logger.warning(f"Distance lookup {origin.stop_id} -> {destination.stop_id} raised {type(exc).__name__}: {exc}")
        return unreachable(str(exc))

    distance, duration = result.distance_m, result.duration_s
    if any(math.isnan(value) or math.isinf(value) or value < 0 for value in (distance, duration)):
        logger.warning(
            f"Distance lookup {origin.stop_id} -> {destination.stop_id} returned invalid values "
            f"(distance={distance}, duration={duration})"
        )
        return unreachable("invalid distance/duration")
    return MatrixEntry(distance_m=distance, duration_s=duration)


def build_distance_matrix(
    stops: Sequence[Stop],
    service: DistanceService,
    *,
    mode: str = DEFAULT_MODE,
    max_concurrency: int = 1,
    cancel_event: threading.Event | None = None,
) -> DistanceMatrix:
    """Look up every off-diagonal ordered pair and return the full N x N matrix.

    Failed pairs are recorded as unreachable instead of aborting the build, so
    the result may be partially (or entirely) unreachable. With
    `max_concurrency` above one, lookups fan out over a thread pool that never
    holds more than `max_concurrency` requests in flight. Setting
    `cancel_event` stops new lookups and raises PlanningCancelled.
    """
    size = len(stops)
    matrix = DistanceMatrix(size)
    pairs = [(i, j) for i in range(size) for j in range(size) if i != j]
    if not pairs:
        return matrix

    start_time = time.time()
    if max_concurrency <= 1:
        for i, j in pairs:
            _raise_if_cancelled(cancel_event, len(pairs))
            matrix.set(i, j, lookup_entry(service, stops[i], stops[j], mode))
    else:
        _build_concurrently(matrix, stops, pairs, service, mode, max_concurrency, cancel_event)

    failures = matrix.unreachable_count()
    elapsed = time.time() - start_time
    logger.info(
        f"Distance matrix built via {getattr(service, 'name', type(service).__name__)}: "
        f"{len(pairs)} lookups, {failures} unreachable, {elapsed:.2f}s"
    )
    return matrix


def _raise_if_cancelled(cancel_event: threading.Event | None, total: int) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise PlanningCancelled("Distance matrix build was cancelled", detail=f"{total} lookups requested")


def _build_concurrently(
    matrix: DistanceMatrix,
    stops: Sequence[Stop],
    pairs: list[tuple[int, int]],
    service: DistanceService,
    mode: str,
    max_concurrency: int,
    cancel_event: threading.Event | None,
) -> None:
    in_flight: dict[Future, tuple[int, int]] = {}
    remaining = iter(pairs)
    exhausted = False

    with ThreadPoolExecutor(max_workers=max_concurrency) as executor:
        try:
            while True:
                while not exhausted and len(in_flight) < max_concurrency:
                    _raise_if_cancelled(cancel_event, len(pairs))
                    pair = next(remaining, None)
                    if pair is None:
                        exhausted = True
                        break
                    i, j = pair
                    future = executor.submit(lookup_entry, service, stops[i], stops[j], mode)
                    in_flight[future] = pair
                if not in_flight:
                    break
                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    i, j = in_flight.pop(future)
                    matrix.set(i, j, future.result())
        except PlanningCancelled:
            for future in in_flight:
                future.cancel()
            raise


class LazyDistanceMatrix(DistanceMatrix):
    """Matrix whose entries are looked up the first time they are read.

    Nearest-neighbor only reads the rows of stops it visits, so this typically
    makes far fewer external calls than the eager build.
    """

    def __init__(
        self,
        stops: Sequence[Stop],
        service: DistanceService,
        *,
        mode: str = DEFAULT_MODE,
        cancel_event: threading.Event | None = None,
    ) -> None:
        super().__init__(len(stops))
        self._stops = list(stops)
        self._service = service
        self._mode = mode
        self._cancel_event = cancel_event
        self._resolved: dict[tuple[int, int], MatrixEntry] = {}

    @property
    def lookups(self) -> int:
        return len(self._resolved)

    def entry(self, origin: int, destination: int) -> MatrixEntry:
        if origin == destination:
            return super().entry(origin, destination)
        key = (origin, destination)
        if key not in self._resolved:
            _raise_if_cancelled(self._cancel_event, self.size * (self.size - 1))
            value = lookup_entry(self._service, self._stops[origin], self._stops[destination], self._mode)
            self._resolved[key] = value
            super().set(origin, destination, value)
        return self._resolved[key]

    def set(self, origin: int, destination: int, value: MatrixEntry) -> None:
        super().set(origin, destination, value)
        self._resolved[(origin, destination)] = value

    def unreachable_count(self) -> int:
        return sum(1 for value in self._resolved.values() if not value.reachable)

    def has_usable_data(self) -> bool:
        if self.size < 2:
            return True
        return any(value.reachable for value in self._resolved.values())

    def errors(self) -> list[str]:
        return [value.error for value in self._resolved.values() if value.error]
