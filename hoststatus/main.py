from __future__ import annotations

import argparse
import logging
import sys
import threading
from typing import List, Optional

from .cache import StatusCache
from .config import Settings
from .fanout import FanOut
from .registry import ConfigError, default_host_specs, load_host_specs, validate_specs
from .util import HostSpec
from .webapp import create_app

log = logging.getLogger("hoststatus")


def parse_args(argv: Optional[List[str]] = None) -> Settings:
    env = Settings.from_env()
    p = argparse.ArgumentParser(prog="hoststatus")
    p.add_argument("--listen", default=env.listen, help="Listen address")
    p.add_argument("--port", type=int, default=env.port, help="Listen port")
    p.add_argument("--probe-timeout-ms", type=int, default=env.probe_timeout_ms, help="Per-probe deadline (ms)")
    p.add_argument("--cache-ttl-ms", type=int, default=env.cache_ttl_ms, help="How long a snapshot is served (ms)")
    p.add_argument("--session-json", default=env.session_json_path, help="JSON file holding the expected session profile name")
    p.add_argument("--apims-json", default=env.apims_json_path, help="Reference JSON for api.minecraftservices.com")
    p.add_argument("--hosts-file", default=env.hosts_file, help="YAML host list replacing the built-in one")
    p.add_argument("--log-level", default=env.log_level, help="Logging level")
    p.add_argument("--prewarm", action="store_true", default=env.prewarm, help="Fill the cache once at startup")
    args = p.parse_args(argv)

    if args.probe_timeout_ms <= 0 or args.cache_ttl_ms <= 0:
        p.error("--probe-timeout-ms and --cache-ttl-ms must be positive")

    return Settings(
        port=args.port,
        listen=args.listen,
        probe_timeout_ms=args.probe_timeout_ms,
        cache_ttl_ms=args.cache_ttl_ms,
        session_json_path=args.session_json,
        apims_json_path=args.apims_json,
        hosts_file=args.hosts_file,
        log_level=str(args.log_level).upper(),
        prewarm=args.prewarm,
    )


def build_specs(settings: Settings) -> List[HostSpec]:
    if settings.hosts_file:
        return load_host_specs(settings.hosts_file)
    specs = default_host_specs(settings.session_json_path, settings.apims_json_path)
    validate_specs(specs)
    return specs


def build_cache(settings: Settings, specs: List[HostSpec]) -> StatusCache:
    timeout_s = settings.probe_timeout_s
    fan = FanOut(specs, timeout_s=timeout_s)
    return StatusCache(fan.refresh, ttl_s=settings.cache_ttl_s)


def main(argv: Optional[List[str]] = None) -> int:
    settings = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        specs = build_specs(settings)
    except ConfigError as e:
        log.error("invalid host configuration: %s", e)
        return 2

    cache = build_cache(settings, specs)

    if settings.prewarm:
        t = threading.Thread(target=cache.get, name="prewarm", daemon=True)
        t.start()

    app = create_app(cache)
    log.info("HTTP status server running on http://%s:%d (%d hosts)", settings.listen, settings.port, len(specs))
    app.run(host=settings.listen, port=settings.port, threaded=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
