from __future__ import annotations

import enum
import os
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

__version__ = "1.0.0"

USER_AGENT = f"hoststatus/{__version__}"


def env_bool(name: str, default: bool=False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def env_str(name: str, default: Optional[str]=None) -> Optional[str]:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return v.strip()


def now_ts() -> float:
    return time.time()


class Verdict(str, enum.Enum):
    green = "green"
    red = "red"


class StrategyKind(str, enum.Enum):
    basic = "basic"
    url_ok = "url_ok"
    any_json = "any_json"
    name_match = "name_match"
    exact_json = "exact_json"


@dataclass(frozen=True)
class BasicConfig:
    kind = StrategyKind.basic


@dataclass(frozen=True)
class UrlOkConfig:
    url: str
    kind = StrategyKind.url_ok


@dataclass(frozen=True)
class AnyJsonConfig:
    url: str
    kind = StrategyKind.any_json


@dataclass(frozen=True)
class NameMatchConfig:
    url: str
    expected_name: Optional[str] = None  # None => load failed, always red
    kind = StrategyKind.name_match


@dataclass(frozen=True)
class ExactJsonConfig:
    url: str
    reference: Any = None
    has_reference: bool = False
    reference_path: str = ""
    kind = StrategyKind.exact_json


StrategyConfig = Union[BasicConfig, UrlOkConfig, AnyJsonConfig, NameMatchConfig, ExactJsonConfig]


@dataclass(frozen=True)
class HostSpec:
    host: str
    strategy: StrategyKind = StrategyKind.basic
    config: StrategyConfig = field(default_factory=BasicConfig)

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("HostSpec requires a host")
        if self.config.kind is not self.strategy:
            raise ValueError(
                f"{self.host}: config {type(self.config).__name__} does not match strategy {self.strategy.value}"
            )

    @property
    def target_url(self) -> str:
        url = getattr(self.config, "url", None)
        return url or f"https://{self.host}/"


@dataclass(frozen=True)
class ProbeResponse:
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    @property
    def content_type(self) -> str:
        for k, v in self.headers.items():
            if k.lower() == "content-type":
                return v or ""
        return ""


@dataclass(frozen=True)
class ProbeResult:
    host: str
    verdict: Verdict
    detail: str = ""
    latency_ms: Optional[int] = None

    @property
    def green(self) -> bool:
        return self.verdict is Verdict.green


@dataclass(frozen=True)
class StatusSnapshot:
    results: Tuple[ProbeResult, ...]
    completed_at: float = field(default_factory=now_ts)

    def __len__(self) -> int:
        return len(self.results)

    def items(self) -> Iterator[Tuple[str, Verdict]]:
        for r in self.results:
            yield r.host, r.verdict

    def to_payload(self) -> List[Dict[str, str]]:
        return [{r.host: r.verdict.value} for r in self.results]

    def to_details(self) -> Dict[str, Any]:
        return {
            "completed_at": self.completed_at,
            "hosts": [
                {"host": r.host, "status": r.verdict.value, "detail": r.detail, "latency_ms": r.latency_ms}
                for r in self.results
            ],
        }
