"""TOML config: default.toml, an optional profile overlay, typed accessors."""

from __future__ import annotations

import logging
import os
import sys
import tomllib
from pathlib import Path
from typing import Any

CONFIG_DIR_ENV = "PREDCASCADE_CONFIG_DIR"

# Repository config/ (src/predcascade/config/settings.py -> ../../../../config)
_PACKAGE_CONFIG_DIR = Path(__file__).resolve().parents[3] / "config"

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def _load_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override into a copy of base; nested tables merge, everything else is replaced."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _find_config_dir(config_dir: Path | None = None) -> Path:
    """Explicit dir, then $PREDCASCADE_CONFIG_DIR, then ./config, then the repository config/."""
    if config_dir is not None:
        return Path(config_dir)
    env_dir = os.environ.get(CONFIG_DIR_ENV)
    if env_dir:
        return Path(env_dir)
    cwd_dir = Path.cwd() / "config"
    if cwd_dir.is_dir():
        return cwd_dir
    return _PACKAGE_CONFIG_DIR


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Raw merged config. A missing default.toml yields {}; a missing profile file is ignored."""
    directory = _find_config_dir(config_dir)
    default_path = directory / "default.toml"
    if not default_path.exists():
        return {}
    raw = _load_toml(default_path)
    overlay_path = directory / f"{profile}.toml" if profile else None
    if overlay_path is not None and overlay_path.exists():
        raw = _deep_merge(raw, _load_toml(overlay_path))
    return raw


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    return Settings.from_dict(load_config(profile, config_dir))


class Settings:
    """Settings grouped by TOML table: storage, engine, spawn, runtime, logging."""

    def __init__(
        self,
        *,
        storage: dict[str, Any] | None = None,
        engine: dict[str, Any] | None = None,
        spawn: dict[str, Any] | None = None,
        runtime: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.storage = storage or {}
        self.engine = engine or {}
        self.spawn = spawn or {}
        self.runtime = runtime or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        tables = ("storage", "engine", "spawn", "runtime", "logging")
        return cls(**{name: raw.get(name) for name in tables})

    # [storage]
    @property
    def db_path(self) -> str:
        return self.storage.get("db_path", "data/predcascade.duckdb")

    # [engine]
    @property
    def strict(self) -> bool:
        return bool(self.engine.get("strict", False))

    # [spawn]
    @property
    def spawn_admin(self) -> str:
        return self.spawn.get("admin", "admin")

    @property
    def default_total_stake(self) -> int:
        return int(self.spawn.get("default_total_stake", 1000))

    @property
    def default_rules(self) -> list[dict[str, Any]]:
        """Raw [[spawn.default_rules]] tables; empty means the built-in rules apply."""
        return list(self.spawn.get("default_rules") or [])

    # [runtime]
    @property
    def default_caller(self) -> str:
        return self.runtime.get("default_caller", "user")

    @property
    def max_delivery_steps(self) -> int:
        return int(self.runtime.get("max_delivery_steps", 10_000))

    # [logging]
    @property
    def logging_level(self) -> str:
        return str(self.logging.get("level", "INFO")).upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return _LEVELS.get(self.logging_level, logging.INFO)


def configure_logging(settings: Settings) -> None:
    """Configure structlog once at application entry. Logs go to stderr so CLI output stays clean."""
    import structlog

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings.logging_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors += [structlog.processors.StackInfoRenderer(), structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        # sys.stderr looked up per logger, it can be swapped after configuration
        logger_factory=lambda *args: structlog.PrintLogger(sys.stderr),
        cache_logger_on_first_use=False,
    )
