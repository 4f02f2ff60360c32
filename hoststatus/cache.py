from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from .util import StatusSnapshot

log = logging.getLogger(__name__)

DEFAULT_TTL_S = 30.0


class _Flight:
    """One in-progress refresh; every reader that joins waits on it."""

    def __init__(self) -> None:
        self._done = threading.Event()
        self._snapshot: Optional[StatusSnapshot] = None
        self._error: Optional[BaseException] = None

    def resolve(self, snapshot: StatusSnapshot) -> None:
        self._snapshot = snapshot
        self._done.set()

    def fail(self, error: BaseException) -> None:
        self._error = error
        self._done.set()

    def wait(self) -> StatusSnapshot:
        self._done.wait()
        if self._error is not None:
            raise self._error
        assert self._snapshot is not None
        return self._snapshot


class StatusCache:
    """TTL cache in front of a refresh callable, with single-flight refresh.

    While the stored snapshot is valid, ``get()`` returns it with no network
    activity. Once it is missing or expired, the first caller starts a
    refresh and every caller arriving before it finishes joins that same
    run. The lock only guards the state transitions and is never held while
    the refresh runs.
    """

    def __init__(
        self,
        refresh: Callable[[], StatusSnapshot],
        ttl_s: float = DEFAULT_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._refresh = refresh
        self.ttl_s = ttl_s
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshot: Optional[StatusSnapshot] = None
        self._expires_at = 0.0
        self._in_flight: Optional[_Flight] = None
        self.refresh_count = 0

    @property
    def expires_at(self) -> float:
        with self._lock:
            return self._expires_at

    def peek(self) -> Optional[StatusSnapshot]:
        with self._lock:
            return self._snapshot

    def get(self) -> StatusSnapshot:
        with self._lock:
            if self._snapshot is not None and self._clock() < self._expires_at:
                return self._snapshot
            flight = self._in_flight
            leader = flight is None
            if leader:
                flight = _Flight()
                self._in_flight = flight
                self.refresh_count += 1
        assert flight is not None

        if leader:
            self._run(flight)
        return flight.wait()

    def _run(self, flight: _Flight) -> None:
        try:
            snapshot = self._refresh()
        except Exception as e:
            log.exception("status refresh failed")
            with self._lock:
                self._in_flight = None
            flight.fail(e)
            return

        with self._lock:
            self._snapshot = snapshot
            self._expires_at = self._clock() + self.ttl_s
            self._in_flight = None
        flight.resolve(snapshot)
