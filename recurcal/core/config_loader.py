"""recurcal.core.config_loader

Typed configuration for recurcal.

- Exposes a `Config` dataclass and a `load_config()` helper that accepts an
  optional path override.
- Files are read with PyYAML; since YAML is a superset of JSON, JSON config
  files load through the same path.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

STORE_BACKENDS = ("memory", "json")
MIN_ITERATIONS = 1
MAX_ITERATIONS = 10_000


@dataclass
class Config:
    """Typed configuration for recurcal.

    Fields:
        server_bind: host to bind the HTTP server to
        server_port: port for the HTTP server
        log_level: logging level name
        store_backend: "memory" or "json"
        store_path: JSON store file (json backend only)
        default_window_months: look-ahead for unbounded listings
        max_iterations: per-series iteration cap during expansion
        window_modified_instances: filter edited occurrences by range on bounded queries
    """

    server_bind: str = "127.0.0.1"
    server_port: int = 8080
    log_level: str = "INFO"
    store_backend: str = "memory"
    store_path: str | None = None
    default_window_months: int = 6
    max_iterations: int = 500
    window_modified_instances: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int and out-of-range values are
        clamped, logging a warning whenever a coercion happens.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int) -> int:
            raw = data.get(key, default)
            try:
                return int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default

        def _coerce_bool(key: str, default: bool) -> bool:
            raw = data.get(key, default)
            if isinstance(raw, bool):
                return raw
            if isinstance(raw, str) and raw.strip().lower() in ("1", "true", "yes", "on"):
                return True
            if isinstance(raw, str) and raw.strip().lower() in ("0", "false", "no", "off"):
                return False
            logger.warning("Config %s=%r is not a boolean; using default %s", key, raw, default)
            return default

        server_port = _coerce_int("server_port", 8080)

        window_months = _coerce_int("default_window_months", 6)
        if window_months < 1:
            logger.warning("default_window_months %d below minimum; coercing to 1", window_months)
            window_months = 1

        max_iterations = _coerce_int("max_iterations", 500)
        if max_iterations < MIN_ITERATIONS:
            logger.warning("max_iterations %d below minimum; coercing to %d", max_iterations, MIN_ITERATIONS)
            max_iterations = MIN_ITERATIONS
        elif max_iterations > MAX_ITERATIONS:
            logger.warning("max_iterations %d above maximum; coercing to %d", max_iterations, MAX_ITERATIONS)
            max_iterations = MAX_ITERATIONS

        server_bind = data.get("server_bind", "127.0.0.1")
        server_bind = str(server_bind) if server_bind is not None else "127.0.0.1"

        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        store_backend = str(data.get("store_backend", "memory") or "memory").lower()
        if store_backend not in STORE_BACKENDS:
            logger.warning("Unknown store_backend %r; falling back to 'memory'", store_backend)
            store_backend = "memory"

        store_path = data.get("store_path")
        if store_path is not None:
            store_path = str(store_path)

        return cls(
            server_bind=server_bind,
            server_port=server_port,
            log_level=log_level,
            store_backend=store_backend,
            store_path=store_path,
            default_window_months=window_months,
            max_iterations=max_iterations,
            window_modified_instances=_coerce_bool("window_modified_instances", True),
        )

    def merged(self, overrides: dict[str, Any]) -> Config:
        """Return a new Config with ``overrides`` applied on top of this one."""
        values = asdict(self)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return Config.from_dict(values)


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML/JSON file and return a Config instance.

    Args:
        path: Optional path to the config file. If not provided the default is
              ./recurcal.yaml (relative to current working dir).

    Returns:
        Config dataclass instance with values from file (or defaults).

    Behavior:
    - If file is missing: returns Config() with defaults.
    - If file exists but top-level is not a mapping: raises ValueError.
    """
    p = Path(path) if path else Path.cwd() / "recurcal.yaml"
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return Config()

    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
    cfg = Config.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", cfg)
    return cfg
