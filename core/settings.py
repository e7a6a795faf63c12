"""
core/settings.py
Settings for the plugins manager.

Reads the ``pmgr:`` section of a YAML config file, then environment
overrides, then explicit overrides from the command line:

    pmgr:
      home: /opt/apache-jmeter
      repo_url: https://jmeter-plugins.org/repo/
      timeout: 30
      lib_dir: lib/ext
      log_level: INFO

Only the bootstrap calls ``load_settings()``; the command core is handed a
ready ``Settings`` value and never looks at the environment itself.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

import yaml

from core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_REPO_URL = "https://jmeter-plugins.org/repo/"
DEFAULT_TIMEOUT = 30.0
CONFIG_FILENAME = "pmgr.yaml"

# env var → settings field
ENV_OVERRIDES = {
    "PMGR_HOME": "home",
    "PMGR_REPO_URL": "repo_url",
    "PMGR_TIMEOUT": "timeout",
    "PMGR_LOG_LEVEL": "log_level",
}


@dataclass
class Settings:
    """Plugins manager settings."""

    home: str = ""
    repo_url: str = DEFAULT_REPO_URL
    timeout: float = DEFAULT_TIMEOUT   # seconds, catalog + downloads

    # ── install layout (relative to home) ─────────────────────────────────
    lib_dir: str = os.path.join("lib", "ext")
    state_file: str = os.path.join("lib", "ext", ".pmgr_installed.json")

    # ── logging ───────────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_dir: str = ".logs"
    structured_logs: bool = False
    configure_logging: bool = True

    @property
    def lib_path(self) -> str:
        return os.path.join(self.home, self.lib_dir)

    @property
    def state_path(self) -> str:
        return os.path.join(self.home, self.state_file)

    @classmethod
    def from_yaml(cls, config: dict[str, Any] | None) -> "Settings":
        """Build from a parsed config document; missing ``pmgr:`` → defaults."""
        if not config:
            return cls()
        section = config.get("pmgr") or {}
        if not isinstance(section, dict):
            raise ConfigError("'pmgr' section must be a mapping")

        known = {f.name for f in fields(cls)}
        unknown = set(section) - known
        if unknown:
            logger.warning("Ignoring unknown settings: %s", ", ".join(sorted(unknown)))
        settings = cls(**{k: v for k, v in section.items() if k in known})
        settings.timeout = _coerce_timeout(settings.timeout)
        return settings


def _coerce_timeout(value) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid timeout: {value!r}")
    if timeout <= 0:
        raise ConfigError(f"Timeout must be positive: {value!r}")
    return timeout


def _read_yaml(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a mapping")
    return data


def load_settings(config_path: Optional[str] = None,
                  env: Optional[Mapping[str, str]] = None,
                  default_home: str = "",
                  **overrides) -> Settings:
    """
    Resolve settings: YAML file < environment < explicit overrides.

    Args:
        config_path: YAML file; when omitted, ``<home>/pmgr.yaml`` is used
            if it exists (home taken from overrides, env or default_home)
        env: environment mapping (defaults to ``os.environ``)
        default_home: home used when no source sets one
        overrides: field values from the command line; ``None`` is ignored
    """
    env = os.environ if env is None else env
    overrides = {k: v for k, v in overrides.items() if v is not None}

    if not config_path:
        home = overrides.get("home") or env.get("PMGR_HOME") or default_home
        candidate = os.path.join(home, CONFIG_FILENAME) if home else ""
        if candidate and os.path.exists(candidate):
            config_path = candidate

    settings = Settings.from_yaml(_read_yaml(config_path)) if config_path else Settings()

    for var, name in ENV_OVERRIDES.items():
        if env.get(var):
            setattr(settings, name, env[var])

    known = {f.name for f in fields(Settings)}
    for name, value in overrides.items():
        if name not in known:
            raise ConfigError(f"Unknown setting: {name}")
        setattr(settings, name, value)

    settings.timeout = _coerce_timeout(settings.timeout)
    if not settings.home:
        settings.home = default_home
    if not settings.home:
        raise ConfigError("Plugins home is not set (use --home or PMGR_HOME)")
    settings.home = os.path.abspath(settings.home)
    logger.debug("Settings resolved: home=%s repo=%s timeout=%.1f",
                 settings.home, settings.repo_url, settings.timeout)
    return settings
