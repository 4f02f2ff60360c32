# ============================================================================
# FAN-OUT COORDINATOR TESTS
# ============================================================================
# PURPOSE: Verify parallel probing, ordering and per-host isolation
# ============================================================================
"""
Fan-Out Coordinator Tests

Covers:
1. Snapshot order follows host list order, not completion order
2. Probes run in parallel (total time ~ one timeout, not N)
3. A failing or raising host does not affect siblings
4. A probe hung past the deadline is red and does not hold the snapshot

Run with:
    pytest tests/test_fanout.py -v
"""

import threading
import time

from hoststatus.checks import probe
from hoststatus.fanout import FanOut
from hoststatus.util import HostSpec, ProbeResult, Verdict
from tests.conftest import FakeResponse, FakeTransport

HOSTS = [HostSpec(f"h{i}.example") for i in range(5)]


def _sleepy_prober(delays):
    def _probe(spec, timeout_s):
        time.sleep(delays.get(spec.host, 0.0))
        return ProbeResult(spec.host, Verdict.green, "ok")
    return _probe


class TestOrdering:
    def test_order_matches_host_list(self):
        delays = {"h0.example": 0.2, "h1.example": 0.0, "h2.example": 0.1, "h3.example": 0.05, "h4.example": 0.0}
        snap = FanOut(HOSTS, _sleepy_prober(delays), timeout_s=1.0).refresh()
        assert [h for h, _ in snap.items()] == [s.host for s in HOSTS]
        assert len(snap) == len(HOSTS)

    def test_payload_shape(self):
        snap = FanOut(HOSTS[:2], _sleepy_prober({}), timeout_s=1.0).refresh()
        assert snap.to_payload() == [{"h0.example": "green"}, {"h1.example": "green"}]

    def test_empty_host_list(self):
        assert len(FanOut([], timeout_s=1.0).refresh()) == 0


class TestParallelism:
    def test_runs_concurrently(self):
        delays = {s.host: 0.3 for s in HOSTS}
        t0 = time.monotonic()
        FanOut(HOSTS, _sleepy_prober(delays), timeout_s=1.0).refresh()
        assert time.monotonic() - t0 < 0.3 * 2

    def test_all_probes_started_together(self):
        barrier = threading.Barrier(len(HOSTS), timeout=2.0)

        def _probe(spec, timeout_s):
            barrier.wait()
            return ProbeResult(spec.host, Verdict.green)

        snap = FanOut(HOSTS, _probe, timeout_s=2.0).refresh()
        assert all(v is Verdict.green for _, v in snap.items())


class TestIsolation:
    def test_failing_transport_does_not_affect_others(self):
        transport = FakeTransport({
            ("HEAD", "https://good.example/"): FakeResponse(200),
            ("HEAD", "https://slow.example/"): 0.4,
        })
        specs = [HostSpec("slow.example"), HostSpec("dead.example"), HostSpec("good.example")]
        fan = FanOut(specs, lambda s, t: probe(s, t, transport), timeout_s=0.3, grace_s=0.2)
        t0 = time.monotonic()
        snap = fan.refresh()
        elapsed = time.monotonic() - t0
        assert dict(snap.items()) == {
            "slow.example": Verdict.red,
            "dead.example": Verdict.red,
            "good.example": Verdict.green,
        }
        assert elapsed < 0.3 + 0.2 + 0.2

    def test_raising_prober_only_fails_its_host(self):
        def _probe(spec, timeout_s):
            if spec.host == "h2.example":
                raise RuntimeError("contract broken")
            return ProbeResult(spec.host, Verdict.green)

        snap = FanOut(HOSTS, _probe, timeout_s=1.0).refresh()
        verdicts = dict(snap.items())
        assert verdicts.pop("h2.example") is Verdict.red
        assert all(v is Verdict.green for v in verdicts.values())

    def test_hung_probe_is_overrun_red(self):
        release = threading.Event()

        def _probe(spec, timeout_s):
            if spec.host == "h0.example":
                release.wait(5.0)
            return ProbeResult(spec.host, Verdict.green)

        try:
            t0 = time.monotonic()
            snap = FanOut(HOSTS, _probe, timeout_s=0.1, grace_s=0.1).refresh()
            assert time.monotonic() - t0 < 1.0
        finally:
            release.set()
        assert snap.results[0].verdict is Verdict.red
        assert snap.results[0].detail == "deadline overrun"
        assert all(r.green for r in snap.results[1:])
