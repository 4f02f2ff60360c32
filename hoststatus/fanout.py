from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, List, Sequence

from .checks import DEFAULT_TIMEOUT_S, probe
from .util import HostSpec, ProbeResult, StatusSnapshot, Verdict, now_ts

log = logging.getLogger(__name__)

Prober = Callable[[HostSpec, float], ProbeResult]

DEFAULT_GRACE_S = 0.5


def _default_prober(spec: HostSpec, timeout_s: float) -> ProbeResult:
    return probe(spec, timeout_s)


class FanOut:
    """Runs one probe per host in parallel and collects an ordered snapshot."""

    def __init__(
        self,
        specs: Sequence[HostSpec],
        prober: Prober = _default_prober,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        grace_s: float = DEFAULT_GRACE_S,
    ):
        self.specs = tuple(specs)
        self.prober = prober
        self.timeout_s = timeout_s
        self.grace_s = grace_s

    def refresh(self) -> StatusSnapshot:
        t0 = time.monotonic()
        if not self.specs:
            return StatusSnapshot(results=())

        pool = ThreadPoolExecutor(max_workers=len(self.specs), thread_name_prefix="probe")
        try:
            futs: List[Future] = [pool.submit(self.prober, s, self.timeout_s) for s in self.specs]
            wait(futs, timeout=self.timeout_s + self.grace_s)
        finally:
            # stragglers finish on their own deadline; nobody waits for them
            pool.shutdown(wait=False, cancel_futures=True)

        results = [self._collect(spec, fut) for spec, fut in zip(self.specs, futs)]
        snap = StatusSnapshot(results=tuple(results), completed_at=now_ts())

        green = sum(1 for r in results if r.green)
        log.info(
            "refreshed %d hosts: %d green / %d red in %d ms",
            len(results), green, len(results) - green, int((time.monotonic() - t0) * 1000),
        )
        return snap

    def _collect(self, spec: HostSpec, fut: Future) -> ProbeResult:
        if not fut.done():
            return ProbeResult(spec.host, Verdict.red, "deadline overrun")
        try:
            result = fut.result()
        except Exception:
            log.exception("probe of %s raised", spec.host)
            return ProbeResult(spec.host, Verdict.red, "probe error")
        if result.host != spec.host:
            # a custom prober must answer for the host it was given
            return ProbeResult(spec.host, result.verdict, result.detail, result.latency_ms)
        return result
