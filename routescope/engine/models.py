"""Core data models for catalog matching and scope resolution."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

# Roles recognized in a router "Router" section, in display order.
ROUTER_ROLES: tuple[str, ...] = (
    "default",
    "think",
    "longContext",
    "webSearch",
    "background",
    "image",
)

# Order used when picking the single "current" model from a router.
PRIMARY_ROLE_ORDER: tuple[str, ...] = (
    "default",
    "think",
    "background",
    "longContext",
    "webSearch",
    "image",
)


def primary_model(router: dict[str, Any]) -> str | None:
    """The single model a router is "on": ``default`` first, then other roles."""
    for role in PRIMARY_ROLE_ORDER:
        value = router.get(role)
        if isinstance(value, str) and value:
            return value
    return None


class SessionSource(str, Enum):
    """Where a session identifier was discovered."""
    ENV = "env"        # explicit environment variable
    CACHE = "cache"    # PID-keyed cache file written at session start
    MTIME = "mtime"    # newest session log (unreliable with parallel sessions)
    NONE = "none"


class ConfigLevel(str, Enum):
    """Scope a routing configuration applies to."""
    GLOBAL = "global"
    PROJECT = "project"
    SESSION = "session"


@dataclass(frozen=True)
class ModelEntry:
    """One (provider, model) pair from a registry snapshot."""
    provider: str
    model: str

    @property
    def full_name(self) -> str:
        return f"{self.provider}/{self.model}"


@dataclass(frozen=True)
class ScoredModel:
    """A catalog entry together with its fuzzy-match score."""
    entry: ModelEntry
    score: float

    @property
    def full_name(self) -> str:
        return self.entry.full_name

    @property
    def provider(self) -> str:
        return self.entry.provider

    @property
    def model(self) -> str:
        return self.entry.model


@dataclass(frozen=True)
class ScopeIdentity:
    """Project/session identity derived for a single resolution call.

    Either identifier may be ``None`` when it cannot be derived; callers
    decide whether to fall back to a broader scope or to refuse a
    mutation that needs the narrower one.
    """
    project_id: str | None = None
    session_id: str | None = None
    session_source: SessionSource = SessionSource.NONE

    @property
    def has_project(self) -> bool:
        return bool(self.project_id)

    @property
    def has_session(self) -> bool:
        return bool(self.project_id) and bool(self.session_id)


@dataclass
class EffectiveRouter:
    """The routing section that applies right now and where it came from."""
    level: ConfigLevel
    router: dict[str, str] = field(default_factory=dict)
    identity: ScopeIdentity = field(default_factory=ScopeIdentity)
    source_path: Path | None = None

    @property
    def primary_model(self) -> str | None:
        """First non-empty role value, ``default`` first."""
        return primary_model(self.router)

    @property
    def display_model(self) -> str | None:
        """Primary model in ``provider/model`` form."""
        value = self.primary_model
        if value is None:
            return None
        return value.replace(",", "/", 1)


@dataclass
class SessionCacheRecord:
    """Session identity cached by the session-start hook, keyed by owner PID."""
    session_id: str
    pid: int
    cwd: str = ""
    timestamp_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "pid": self.pid,
            "cwd": self.cwd,
            "timestamp": self.timestamp_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionCacheRecord | None:
        """Build a record from parsed JSON, or ``None`` if required keys are bad.

        Older hook versions wrote the timestamp under ``ts``.
        """
        session_id = data.get("session_id")
        pid = data.get("pid")
        if not isinstance(session_id, str) or not session_id:
            return None
        if isinstance(pid, bool) or not isinstance(pid, int):
            return None
        timestamp = data.get("timestamp", data.get("ts", 0))
        if not isinstance(timestamp, (int, float)) or isinstance(timestamp, bool):
            timestamp = 0
        cwd = data.get("cwd")
        return cls(
            session_id=session_id,
            pid=pid,
            cwd=cwd if isinstance(cwd, str) else "",
            timestamp_ms=int(timestamp),
        )
