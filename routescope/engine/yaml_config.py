"""YAML settings loader.

Optional. When no file exists, ROUTESCOPE_* env vars and the built-in
defaults apply unchanged. Values in the file override env vars.

Example YAML:
    paths:
      claude_dir: .claude
      router_dir: .claude-code-router
      cache_dir: ccr-sessions

    session:
      env_var: CLAUDE_CODE_SESSION_ID
      max_ancestry_hops: 5

    logging:
      level: DEBUG
"""
from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .config import ResolverSettings

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "ROUTESCOPE_SETTINGS"


def default_settings_path(home: Path, env: Mapping[str, str] | None = None) -> Path:
    """``$ROUTESCOPE_SETTINGS`` if set, else ``~/.routescope/settings.yaml``."""
    env = os.environ if env is None else env
    explicit = env.get(SETTINGS_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser()
    return home / ".routescope" / "settings.yaml"


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning("Ignoring settings section %r: expected a mapping", name)
        return {}
    return value


def _optional_int(value: Any, key: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        logger.warning("Ignoring settings key %r: expected an integer", key)
        return None
    return value


def _optional_str(value: Any, key: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        logger.warning("Ignoring settings key %r: expected a non-empty string", key)
        return None
    return value


def parse_settings(
    raw: dict[str, Any] | None,
    base: ResolverSettings | None = None,
) -> ResolverSettings:
    """Apply a parsed YAML mapping on top of *base* settings."""
    base = base or ResolverSettings()
    if not raw:
        return base

    paths = _section(raw, "paths")
    session = _section(raw, "session")
    log = _section(raw, "logging")

    level = _optional_str(log.get("level"), "logging.level")
    return base.merged(
        claude_dir_name=_optional_str(paths.get("claude_dir"), "paths.claude_dir"),
        router_dir_name=_optional_str(paths.get("router_dir"), "paths.router_dir"),
        cache_dir_name=_optional_str(paths.get("cache_dir"), "paths.cache_dir"),
        session_env_var=_optional_str(session.get("env_var"), "session.env_var"),
        max_ancestry_hops=_optional_int(
            session.get("max_ancestry_hops"), "session.max_ancestry_hops"
        ),
        log_level=level.upper() if level is not None else None,
    )


def load_yaml_settings(
    path: str | Path,
    base: ResolverSettings | None = None,
) -> ResolverSettings:
    """Load settings from *path*, falling back to *base* when absent or invalid."""
    path = Path(path)
    base = base or ResolverSettings()
    if not path.exists():
        logger.debug("Settings file not found at %s; using defaults", path)
        return base

    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to read settings from %s: %s", path, exc)
        return base

    if raw is None:
        return base
    if not isinstance(raw, dict):
        logger.warning("Settings file %s is not a mapping; ignoring", path)
        return base

    settings = parse_settings(raw, base)
    logger.info("Loaded settings from %s", path)
    return settings
