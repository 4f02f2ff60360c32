# ============================================================================
# SHARED TEST FIXTURES
# ============================================================================
# PURPOSE: Fake requests transport so probes run without network access
# ============================================================================
"""
Shared fixtures.

FakeTransport stands in for ``requests.Session``: each session it hands out
answers from a route table keyed by (method, url), records every call and
whether it was closed.
"""

import threading
import time
from typing import Any, Dict, List, Tuple

import pytest
import requests


class FakeResponse:
    def __init__(self, status_code: int = 200, body: bytes = b"", headers: Dict[str, str] = None, delay_s: float = 0.0):
        self.status_code = status_code
        self.body = body
        self.headers = headers or {}
        self.delay_s = delay_s
        self.closed = False

    def iter_content(self, chunk_size: int = 1):
        if self.delay_s:
            time.sleep(self.delay_s)
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i:i + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, transport: "FakeTransport"):
        self.transport = transport
        self.closed = False

    def request(self, method, url, timeout=None, allow_redirects=True, stream=False, headers=None):
        return self.transport.handle(method, url, timeout)

    def close(self):
        self.closed = True


class FakeTransport:
    """Session factory with a (method, url) route table.

    A route value may be a FakeResponse, an exception instance to raise, or
    a float number of seconds to sleep before raising requests.Timeout.
    """

    def __init__(self, routes: Dict[Tuple[str, str], Any] = None):
        self.routes = dict(routes or {})
        self.calls: List[Tuple[str, str]] = []
        self.timeouts: List[Any] = []
        self.sessions: List[FakeSession] = []
        self._lock = threading.Lock()

    def __call__(self) -> FakeSession:
        s = FakeSession(self)
        with self._lock:
            self.sessions.append(s)
        return s

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.calls)

    def handle(self, method, url, timeout):
        with self._lock:
            self.calls.append((method, url))
            self.timeouts.append(timeout)
        route = self.routes.get((method, url))
        if route is None:
            raise requests.ConnectionError(f"no route for {method} {url}")
        if isinstance(route, BaseException):
            raise route
        if isinstance(route, float):
            time.sleep(route)
            raise requests.ReadTimeout("read timed out")
        return route


@pytest.fixture
def transport():
    return FakeTransport()


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
