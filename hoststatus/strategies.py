from __future__ import annotations

import json
from typing import Any, Callable, Dict, Tuple

from .canonical import canonicalize
from .util import (
    ExactJsonConfig,
    HostSpec,
    NameMatchConfig,
    ProbeResponse,
    ProbeResult,
    StrategyKind,
    Verdict,
)

Verifier = Callable[[HostSpec, ProbeResponse], Tuple[Verdict, str]]


class ContentMismatch(Exception):
    pass


def _parse_json(resp: ProbeResponse) -> Any:
    if not resp.body:
        raise ContentMismatch("empty body")
    try:
        return json.loads(resp.body.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ContentMismatch(f"invalid JSON ({type(e).__name__})") from e


def _verify_status(spec: HostSpec, resp: ProbeResponse) -> Tuple[Verdict, str]:
    if resp.ok:
        return Verdict.green, f"HTTP {resp.status_code}"
    return Verdict.red, f"HTTP {resp.status_code}"


def _verify_any_json(spec: HostSpec, resp: ProbeResponse) -> Tuple[Verdict, str]:
    if not resp.ok:
        return Verdict.red, f"HTTP {resp.status_code}"
    # content-type is not required; a JSON content-type with a broken body is still red
    declared = "json" in resp.content_type.lower()
    try:
        _parse_json(resp)
    except ContentMismatch as e:
        if declared:
            raise ContentMismatch(f"{e} despite content-type {resp.content_type}") from e
        raise
    return Verdict.green, "JSON ok" if declared else "JSON ok (undeclared content-type)"


def _verify_name_match(spec: HostSpec, resp: ProbeResponse) -> Tuple[Verdict, str]:
    cfg = spec.config
    assert isinstance(cfg, NameMatchConfig)
    if not cfg.expected_name:
        return Verdict.red, "expected name not configured"
    if not resp.ok:
        return Verdict.red, f"HTTP {resp.status_code}"
    live = _parse_json(resp)
    if not isinstance(live, dict):
        return Verdict.red, "body is not a JSON object"
    if live.get("name") != cfg.expected_name:
        return Verdict.red, "name mismatch"
    return Verdict.green, "name ok"


def _verify_exact_json(spec: HostSpec, resp: ProbeResponse) -> Tuple[Verdict, str]:
    cfg = spec.config
    assert isinstance(cfg, ExactJsonConfig)
    if not cfg.has_reference:
        return Verdict.red, "reference document not loaded"
    if not resp.ok:
        return Verdict.red, f"HTTP {resp.status_code}"
    live = _parse_json(resp)
    if canonicalize(live) != canonicalize(cfg.reference):
        return Verdict.red, "document mismatch"
    return Verdict.green, "document ok"


VERIFIERS: Dict[StrategyKind, Verifier] = {
    StrategyKind.basic: _verify_status,
    StrategyKind.url_ok: _verify_status,
    StrategyKind.any_json: _verify_any_json,
    StrategyKind.name_match: _verify_name_match,
    StrategyKind.exact_json: _verify_exact_json,
}

_missing = set(StrategyKind) - set(VERIFIERS)
if _missing:
    raise RuntimeError(f"no verifier for strategies: {sorted(k.value for k in _missing)}")


def verify(spec: HostSpec, resp: ProbeResponse) -> ProbeResult:
    """Apply the host's strategy to a fetched response.

    Never raises: parse failures, mismatches and unexpected errors all come
    back as a red result with the reason in ``detail``.
    """
    try:
        verdict, detail = VERIFIERS[spec.strategy](spec, resp)
    except ContentMismatch as e:
        verdict, detail = Verdict.red, str(e)
    except Exception as e:
        verdict, detail = Verdict.red, f"verify error: {type(e).__name__}"
    return ProbeResult(host=spec.host, verdict=verdict, detail=detail)
