from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from .util import (
    AnyJsonConfig,
    BasicConfig,
    ExactJsonConfig,
    HostSpec,
    NameMatchConfig,
    StrategyConfig,
    StrategyKind,
    UrlOkConfig,
)

log = logging.getLogger(__name__)


class ConfigError(ValueError):
    pass


DEFAULT_HOSTS = [
    "minecraft.net",
    "session.minecraft.net",
    "api.mojang.com",
    "authserver.mojang.com",
    "sessionserver.mojang.com",
    "login.microsoftonline.com",
    "textures.minecraft.net",
    "pc.realms.minecraft.net",
    "resources.download.minecraft.net",
    "libraries.minecraft.net",
    "api.minecraftservices.com",
]

SESSION_PROFILE_URL = "https://sessionserver.mojang.com/session/minecraft/profile/853c80ef3c3749fdaa49938b674adae6"
APIMS_PROFILE_URL = "https://api.minecraftservices.com/minecraft/profile/"


def read_json_file(path: str) -> Tuple[bool, Any]:
    """Returns (loaded, document). Failures are logged and reported as not loaded."""
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            return True, json.load(f)
    except (OSError, ValueError) as e:
        log.warning("Could not read/parse %s: %s", path, e)
        return False, None


def load_expected_name(path: str) -> Optional[str]:
    ok, data = read_json_file(path)
    if not ok:
        return None
    name = data.get("name") if isinstance(data, dict) else None
    if not isinstance(name, str) or not name:
        log.warning("%s has no usable 'name' field; name check for it will report red", path)
        return None
    return name


def load_reference(url: str, path: str) -> ExactJsonConfig:
    ok, doc = read_json_file(path)
    if ok and doc is None:
        log.warning("%s holds a null document; exact match for it will report red", path)
        ok = False
    return ExactJsonConfig(url=url, reference=doc, has_reference=ok, reference_path=path)


def default_host_specs(session_json_path: str, apims_json_path: str) -> List[HostSpec]:
    custom: Dict[str, HostSpec] = {
        "sessionserver.mojang.com": HostSpec(
            host="sessionserver.mojang.com",
            strategy=StrategyKind.name_match,
            config=NameMatchConfig(url=SESSION_PROFILE_URL, expected_name=load_expected_name(session_json_path)),
        ),
        "api.minecraftservices.com": HostSpec(
            host="api.minecraftservices.com",
            strategy=StrategyKind.exact_json,
            config=load_reference(APIMS_PROFILE_URL, apims_json_path),
        ),
    }
    return [custom.get(h) or HostSpec(host=h) for h in DEFAULT_HOSTS]


def load_host_specs(path: str) -> List[HostSpec]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not load host file {path}: {e}") from e

    entries = data.get("hosts") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise ConfigError(f"Host file must be a mapping with a 'hosts' list ({path})")

    base_dir = os.path.dirname(os.path.abspath(path))
    specs = [host_spec_from_dict(e, source_path=path, base_dir=base_dir) for e in entries]
    validate_specs(specs)
    return specs


def host_spec_from_dict(d: Any, source_path: str = "", base_dir: str = ".") -> HostSpec:
    if isinstance(d, str):
        d = {"host": d}
    if not isinstance(d, dict):
        raise ConfigError(f"Host entry must be a string or mapping ({source_path})")

    host = str(d.get("host", "")).strip()
    if not host:
        raise ConfigError(f"Host entry missing 'host' ({source_path})")

    raw_kind = str(d.get("strategy", "basic")).strip().lower()
    try:
        kind = StrategyKind(raw_kind)
    except ValueError:
        raise ConfigError(f"{host}: unknown strategy {raw_kind!r} ({source_path})") from None

    url = (None if d.get("url") in (None, "") else str(d.get("url")).strip())
    if kind is not StrategyKind.basic and not url:
        raise ConfigError(f"{host}: strategy {kind.value} requires 'url' ({source_path})")

    return HostSpec(host=host, strategy=kind, config=_build_config(kind, url, d, base_dir))


def _resolve(base_dir: str, p: str) -> str:
    return p if os.path.isabs(p) else os.path.join(base_dir, p)


def _build_config(kind: StrategyKind, url: Optional[str], d: Dict[str, Any], base_dir: str) -> StrategyConfig:
    if kind is StrategyKind.basic:
        return BasicConfig()
    assert url
    if kind is StrategyKind.url_ok:
        return UrlOkConfig(url=url)
    if kind is StrategyKind.any_json:
        return AnyJsonConfig(url=url)
    if kind is StrategyKind.name_match:
        name = d.get("expected_name")
        if name not in (None, ""):
            return NameMatchConfig(url=url, expected_name=str(name))
        name_file = d.get("expected_name_file")
        if name_file:
            return NameMatchConfig(url=url, expected_name=load_expected_name(_resolve(base_dir, str(name_file))))
        log.warning("%s: name_match without expected_name; it will report red", url)
        return NameMatchConfig(url=url)
    if kind is StrategyKind.exact_json:
        ref = d.get("reference_file")
        if not ref:
            log.warning("%s: exact_json without reference_file; it will report red", url)
            return ExactJsonConfig(url=url)
        return load_reference(url, _resolve(base_dir, str(ref)))
    raise ConfigError(f"unhandled strategy {kind.value}")


def validate_specs(specs: Iterable[HostSpec]) -> None:
    seen = set()
    dupes = []
    for s in specs:
        if s.host in seen:
            dupes.append(s.host)
        seen.add(s.host)
    if dupes:
        raise ConfigError(f"Duplicate hosts in host list: {', '.join(sorted(set(dupes)))}")
