from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Callable

import yaml

from rowcursor.infra.logging.setup import mapLogLevel


@dataclass(frozen=True)
class Settings:
    # Paths / logging
    log_dir: str = "./logs"
    report_dir: str = "./reports"
    log_level: str = "INFO"
    report_items_limit: int = 200

    # Window defaults
    default_offset: int = 0
    default_limit: int | None = None

    # CSV
    csv_has_header: bool = True

    # API source
    host: str | None = None
    port: int | None = None
    api_username: str | None = None
    api_password: str | None = None
    tls_skip_verify: bool = False
    ca_file: str | None = None
    page_size: int = 100
    max_pages: int | None = None
    timeout_seconds: float = 20.0
    retries: int = 3
    retry_backoff_seconds: float = 0.5


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    sources_used: list[str]


def _parse_int(v: str) -> int:
    return int(v)


def _parse_float(v: str) -> float:
    return float(v)


def _parse_bool(v: str) -> bool:
    vv = v.lower()
    if vv in ("1", "true", "yes", "y"):
        return True
    if vv in ("0", "false", "no", "n"):
        return False
    raise ValueError(f"Invalid boolean env value: {v}")


def _parse_str(v: str) -> str:
    return v


_PARSERS: dict[str, Callable[[str], Any]] = {
    "report_items_limit": _parse_int,
    "default_offset": _parse_int,
    "default_limit": _parse_int,
    "csv_has_header": _parse_bool,
    "port": _parse_int,
    "tls_skip_verify": _parse_bool,
    "page_size": _parse_int,
    "max_pages": _parse_int,
    "timeout_seconds": _parse_float,
    "retries": _parse_int,
    "retry_backoff_seconds": _parse_float,
}

ENV_PREFIX = "ROWCURSOR_"


def _read_yaml_config(path: Path) -> dict:
    if not path.exists():
        return {}
    if not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            return {}
        return data


def _env_get(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _require_int(merged: dict[str, Any], name: str, minimum: int, optional: bool = False) -> None:
    value = merged[name]
    if value is None and optional:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")


def _require_bool(merged: dict[str, Any], name: str) -> None:
    if not isinstance(merged[name], bool):
        raise ValueError(f"{name} must be a boolean, got {merged[name]!r}")


def envName(fieldName: str) -> str:
    """ROWCURSOR_<FIELD> для поля Settings."""
    return f"{ENV_PREFIX}{fieldName.upper()}"


def loadSettings(
    config_path: str | None,
    cli_overrides: dict,
) -> LoadedSettings:
    """
    Priority: CLI > ENV > config > defaults
    """
    sources: list[str] = []
    defaults = Settings()
    names = [f.name for f in fields(Settings)]

    # 1) config file
    cfg: dict = {}
    if config_path:
        cfg = _read_yaml_config(Path(config_path))
        if cfg:
            sources.append("config")

    merged: dict[str, Any] = {}
    for name in names:
        value = cfg.get(name, getattr(defaults, name))
        # YAML quoted scalars arrive as str; parse them the same way as ENV
        if isinstance(value, str) and name in _PARSERS:
            value = _PARSERS[name](value.strip())
        merged[name] = value

    # 2) env
    env = {name: _env_get(envName(name)) for name in names}
    if any(v is not None for v in env.values()):
        sources.append("env")
    for name, raw in env.items():
        if raw is None:
            continue
        merged[name] = _PARSERS.get(name, _parse_str)(raw)

    # 3) CLI overrides (only those explicitly passed)
    if any(v is not None for v in cli_overrides.values()):
        sources.append("cli")
    for k, v in cli_overrides.items():
        if v is None:
            continue
        merged[k] = v

    mapLogLevel(str(merged["log_level"]))
    _require_int(merged, "default_offset", minimum=0)
    _require_int(merged, "default_limit", minimum=0, optional=True)
    _require_int(merged, "page_size", minimum=1)
    _require_int(merged, "max_pages", minimum=1, optional=True)
    _require_int(merged, "report_items_limit", minimum=0)
    _require_int(merged, "retries", minimum=0)
    _require_int(merged, "port", minimum=1, optional=True)
    _require_bool(merged, "tls_skip_verify")
    _require_bool(merged, "csv_has_header")

    return LoadedSettings(settings=Settings(**merged), sources_used=sources)
