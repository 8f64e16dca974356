"""Settings for the ingestion job and the query server.

Values are resolved in this order (later wins):
1. Built-in defaults
2. A YAML settings file (``--config`` or ``PDS_A11Y_CONFIG``)
3. ``PDS_A11Y_*`` environment variables
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

import yaml

from pds_a11y.errors import ConfigError
from pds_a11y.limiter import DEFAULT_LIMIT

logger = logging.getLogger(__name__)

_ENV_PREFIX = "PDS_A11Y_"
CONFIG_PATH_ENV = "PDS_A11Y_CONFIG"

_DEFAULT_REQUEST_HEADERS = {"Accept": "application/json"}
_DEFAULT_RESPONSE_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Cache-Control": "public, max-age=3600",
}


@dataclass(frozen=True, slots=True)
class Settings:
    """Explicit configuration passed into the pipeline and server constructors."""

    api_base: str = "https://api.tophhie.cloud"
    pds_base: str = "https://tophhie.social"
    preference_collection: str = "cloud.tophhie.a11y.profile"
    preference_path: tuple[str, ...] = ("accessibility", "shareScore")
    concurrency_limit: int = DEFAULT_LIMIT
    request_timeout: float = 30.0
    run_deadline_seconds: float | None = 900.0
    interval_seconds: float = 86400.0
    store_path: Path = Path("data/scores.json")
    webhook_url: str | None = None
    user_agent: str = "pds-a11y"
    request_headers: dict[str, str] = field(
        default_factory=lambda: dict(_DEFAULT_REQUEST_HEADERS)
    )
    response_headers: dict[str, str] = field(
        default_factory=lambda: dict(_DEFAULT_RESPONSE_HEADERS)
    )
    host: str = "127.0.0.1"
    port: int = 8000

    def outbound_headers(self) -> dict[str, str]:
        """Fixed headers sent with every upstream request."""
        return {**self.request_headers, "User-Agent": self.user_agent}


def load_settings(
    config_path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Build Settings from defaults, an optional YAML file and the environment.

    Raises:
        ConfigError: If the file cannot be parsed or a value has the wrong type.
    """
    if env is None:
        env = os.environ

    settings = Settings()

    path = config_path or env.get(CONFIG_PATH_ENV)
    if path:
        settings = _apply(settings, _read_yaml(Path(path)), source=str(path))

    overrides = {
        f.name: env[_ENV_PREFIX + f.name.upper()]
        for f in fields(Settings)
        if _ENV_PREFIX + f.name.upper() in env
    }
    if overrides:
        settings = _apply(settings, overrides, source="environment")

    if settings.concurrency_limit < 1:
        raise ConfigError("concurrency_limit must be at least 1")
    if settings.interval_seconds <= 0:
        raise ConfigError("interval_seconds must be positive")
    if settings.request_timeout <= 0:
        raise ConfigError("request_timeout must be positive")
    if settings.run_deadline_seconds is not None and settings.run_deadline_seconds <= 0:
        raise ConfigError("run_deadline_seconds must be positive or unset")
    return settings


def _read_yaml(path: Path) -> dict[str, object]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read settings file {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    return data


def _apply(settings: Settings, raw: Mapping[str, object], *, source: str) -> Settings:
    known = {f.name for f in fields(Settings)}
    changes: dict[str, object] = {}
    for key, value in raw.items():
        if key not in known:
            logger.warning("Ignoring unknown setting '%s' from %s", key, source)
            continue
        try:
            changes[key] = _coerce(key, value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid value for '{key}' from {source}: {value!r}") from exc
    return replace(settings, **changes)


def _coerce(key: str, value: object) -> object:
    """Convert a YAML or environment value to the field's type."""
    if key in ("concurrency_limit", "port"):
        if isinstance(value, bool):
            raise TypeError(key)
        return int(value)
    if key in ("request_timeout", "interval_seconds"):
        return float(value)
    if key == "run_deadline_seconds":
        if value is None or (isinstance(value, str) and value.strip().lower() in ("", "none")):
            return None
        return float(value)
    if key == "store_path":
        return Path(str(value)).expanduser()
    if key == "webhook_url":
        if value is None:
            return None
        return str(value).strip() or None
    if key == "preference_path":
        parts = value.split(".") if isinstance(value, str) else list(value)
        if not parts or not all(isinstance(p, str) and p for p in parts):
            raise ValueError(key)
        return tuple(parts)
    if key in ("request_headers", "response_headers"):
        if isinstance(value, str):
            value = yaml.safe_load(value)
        if not isinstance(value, dict):
            raise TypeError(key)
        return {str(k): str(v) for k, v in value.items()}
    return str(value)
