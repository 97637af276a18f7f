"""Resolver settings and the per-call resolution context.

Settings have sensible defaults and can be overridden via ROUTESCOPE_*
environment variables or a YAML settings file. Everything the resolvers
would otherwise read from the ambient process (home directory,
environment, temp directory, cwd, pid, process table) is carried on a
``ResolverContext`` so tests can build one without touching the real
environment.
"""
from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

logger = logging.getLogger(__name__)

ParentLookup = Callable[[int], "int | None"]
LivenessProbe = Callable[[int], bool]


@dataclass
class ResolverSettings:
    """Names and limits used to locate scope documents."""

    # Directory under $HOME holding Claude Code session logs per project.
    claude_dir_name: str = ".claude"
    # Directory under $HOME holding the router's global, project and
    # session documents.
    router_dir_name: str = ".claude-code-router"
    # Directory under the temp dir holding PID-keyed session cache files.
    cache_dir_name: str = "ccr-sessions"
    # Environment variable that carries the session id when the host
    # exports it.
    session_env_var: str = "CLAUDE_CODE_SESSION_ID"
    # Upper bound on parent hops when looking for a session cache file.
    max_ancestry_hops: int = 5
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> ResolverSettings:
        """Load settings from ROUTESCOPE_* environment variables."""
        env = os.environ if env is None else env
        overrides = {k: v for k, v in env.items() if k.startswith("ROUTESCOPE_")}
        if overrides:
            logger.debug(
                "ResolverSettings.from_env: overrides: %s",
                ", ".join(f"{k}={v}" for k, v in sorted(overrides.items())),
            )
        return cls(
            claude_dir_name=env.get("ROUTESCOPE_CLAUDE_DIR", cls.claude_dir_name),
            router_dir_name=env.get("ROUTESCOPE_ROUTER_DIR", cls.router_dir_name),
            cache_dir_name=env.get("ROUTESCOPE_CACHE_DIR", cls.cache_dir_name),
            session_env_var=env.get(
                "ROUTESCOPE_SESSION_ENV_VAR", cls.session_env_var
            ),
            max_ancestry_hops=_int_or_default(
                env.get("ROUTESCOPE_MAX_HOPS"), cls.max_ancestry_hops
            ),
            log_level=env.get("ROUTESCOPE_LOG_LEVEL", cls.log_level),
        )

    def merged(self, **values: object) -> ResolverSettings:
        """Copy with known, non-None fields replaced."""
        known = {
            k: v for k, v in values.items()
            if k in self.__dataclass_fields__ and v is not None
        }
        return replace(self, **known)


def _int_or_default(raw: str | None, default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer value %r; using %d", raw, default)
        return default


def _default_parent_lookup(pid: int) -> int | None:
    from routescope.shared.services.process_tree import parent_pid

    return parent_pid(pid)


def _default_liveness(pid: int) -> bool:
    from routescope.shared.services.process_tree import is_pid_alive

    return is_pid_alive(pid)


@dataclass
class ResolverContext:
    """Explicit inputs for identity and configuration resolution."""

    home: Path
    cwd: Path
    env: Mapping[str, str] = field(default_factory=dict)
    temp_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    pid: int = field(default_factory=os.getpid)
    settings: ResolverSettings = field(default_factory=ResolverSettings)
    parent_of: ParentLookup = field(default=_default_parent_lookup, repr=False)
    is_alive: LivenessProbe = field(default=_default_liveness, repr=False)

    @classmethod
    def from_env(
        cls,
        *,
        cwd: Path | None = None,
        settings: ResolverSettings | None = None,
    ) -> ResolverContext:
        """Snapshot the real process environment."""
        env = dict(os.environ)
        home = Path(env.get("HOME") or Path.home())
        if settings is None:
            settings = ResolverSettings.from_env(env)
        return cls(
            home=home,
            cwd=Path(cwd) if cwd is not None else Path.cwd(),
            env=env,
            temp_dir=Path(tempfile.gettempdir()),
            pid=os.getpid(),
            settings=settings,
        )

    @property
    def projects_dir(self) -> Path:
        """Session-log store: one directory per encoded project path."""
        return self.home / self.settings.claude_dir_name / "projects"

    @property
    def router_dir(self) -> Path:
        return self.home / self.settings.router_dir_name

    @property
    def global_config_path(self) -> Path:
        return self.router_dir / "config.json"

    @property
    def session_cache_dir(self) -> Path:
        return self.temp_dir / self.settings.cache_dir_name

    def project_config_path(self, project_id: str) -> Path:
        return self.router_dir / project_id / "config.json"

    def session_config_path(self, project_id: str, session_id: str) -> Path:
        return self.router_dir / project_id / f"{session_id}.json"
