from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .util import env_bool, env_str

log = logging.getLogger(__name__)


def env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    try:
        n = int(v.strip(), 10)
    except ValueError:
        log.warning("%s=%r is not an integer; using %d", name, v, default)
        return default
    if n <= 0:
        log.warning("%s=%r must be positive; using %d", name, v, default)
        return default
    return n


@dataclass
class Settings:
    port: int = 80
    listen: str = "0.0.0.0"
    probe_timeout_ms: int = 2500
    cache_ttl_ms: int = 30000
    session_json_path: str = "./sessionserver.json"
    apims_json_path: str = "./apiminecraftservices.json"
    hosts_file: Optional[str] = None
    log_level: str = "INFO"
    prewarm: bool = False

    @property
    def probe_timeout_s(self) -> float:
        return self.probe_timeout_ms / 1000.0

    @property
    def cache_ttl_s(self) -> float:
        return self.cache_ttl_ms / 1000.0

    @classmethod
    def from_env(cls) -> "Settings":
        d = cls()
        return cls(
            port=env_int("PORT", d.port),
            listen=env_str("LISTEN_ADDR", d.listen) or d.listen,
            probe_timeout_ms=env_int("PROBE_TIMEOUT_MS", d.probe_timeout_ms),
            cache_ttl_ms=env_int("CACHE_TTL_MS", d.cache_ttl_ms),
            session_json_path=env_str("EXPECTED_SESSION_JSON_PATH", d.session_json_path) or d.session_json_path,
            apims_json_path=env_str("EXPECTED_APIMS_JSON_PATH", d.apims_json_path) or d.apims_json_path,
            hosts_file=env_str("HOSTS_FILE"),
            log_level=(env_str("LOG_LEVEL", d.log_level) or d.log_level).upper(),
            prewarm=env_bool("PREWARM", d.prewarm),
        )
