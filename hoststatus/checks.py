from __future__ import annotations

import logging
import time
from typing import Any, Callable

import requests

from .strategies import verify
from .util import USER_AGENT, HostSpec, ProbeResponse, ProbeResult, StrategyKind, Verdict

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 2.5
_CHUNK = 16 * 1024

SessionFactory = Callable[[], Any]


class DeadlineExceeded(Exception):
    pass


class Deadline:
    """Time budget shared by every request one probe makes."""

    def __init__(self, timeout_s: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.expires_at = clock() + timeout_s

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    def check(self) -> float:
        left = self.remaining()
        if left <= 0.0:
            raise DeadlineExceeded("probe deadline exceeded")
        return left


class ProbeScope:
    """Owns the session and deadline of a single probe.

    Closing the session on exit aborts any pooled connection the probe left
    behind, whatever way the probe ended.
    """

    def __init__(self, timeout_s: float, session_factory: SessionFactory = requests.Session):
        self.deadline = Deadline(timeout_s)
        self.session = session_factory()

    def __enter__(self) -> "ProbeScope":
        return self

    def __exit__(self, *exc) -> None:
        self.session.close()

    def fetch(self, method: str, url: str, read_body: bool = True) -> ProbeResponse:
        left = self.deadline.check()
        r = self.session.request(
            method,
            url,
            timeout=(left, left),
            allow_redirects=True,
            stream=True,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json, */*"},
        )
        try:
            body = _read_body(r, self.deadline) if read_body else b""
            return ProbeResponse(status_code=r.status_code, headers=dict(r.headers), body=body)
        finally:
            r.close()


def _read_body(r: Any, deadline: Deadline) -> bytes:
    chunks = []
    for chunk in r.iter_content(chunk_size=_CHUNK):
        deadline.check()
        if chunk:
            chunks.append(chunk)
    return b"".join(chunks)


def probe(
    spec: HostSpec,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    session_factory: SessionFactory = requests.Session,
) -> ProbeResult:
    """Probe one host. Always returns a result, never raises."""
    t0 = time.monotonic()
    try:
        with ProbeScope(timeout_s, session_factory) as scope:
            if spec.strategy is StrategyKind.basic:
                result = _check_basic(spec, scope)
            else:
                result = _check_get(spec, scope)
    except DeadlineExceeded:
        result = ProbeResult(spec.host, Verdict.red, "timeout")
    except requests.Timeout:
        result = ProbeResult(spec.host, Verdict.red, "timeout")
    except requests.RequestException as e:
        result = ProbeResult(spec.host, Verdict.red, f"HTTP error: {type(e).__name__}")
    except Exception as e:
        log.warning("probe of %s failed unexpectedly: %s", spec.host, e)
        result = ProbeResult(spec.host, Verdict.red, f"error: {type(e).__name__}")

    dt = int((time.monotonic() - t0) * 1000)
    result = ProbeResult(result.host, result.verdict, result.detail, latency_ms=dt)
    log.debug("probe %s -> %s (%s, %d ms)", spec.host, result.verdict.value, result.detail, dt)
    return result


def _check_basic(spec: HostSpec, scope: ProbeScope) -> ProbeResult:
    url = spec.target_url
    head_detail = ""
    try:
        resp = scope.fetch("HEAD", url, read_body=False)
        if resp.ok:
            return verify(spec, resp)
        head_detail = f"HEAD {resp.status_code}"
    except DeadlineExceeded:
        raise
    except requests.RequestException as e:
        head_detail = f"HEAD {type(e).__name__}"

    # GET fallback with whatever is left of the same deadline
    resp = scope.fetch("GET", url, read_body=False)
    result = verify(spec, resp)
    if result.green:
        return result
    return ProbeResult(spec.host, result.verdict, f"{head_detail}, GET {resp.status_code}")


def _check_get(spec: HostSpec, scope: ProbeScope) -> ProbeResult:
    # url_ok only looks at the status code
    resp = scope.fetch("GET", spec.target_url, read_body=spec.strategy is not StrategyKind.url_ok)
    return verify(spec, resp)
