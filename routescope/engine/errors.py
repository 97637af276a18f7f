"""Exception hierarchy for routing configuration changes.

Resolution itself never raises: unknown identities, unreadable layers
and empty searches are all represented in return values. These
exceptions are reserved for mutating operations that cannot proceed.
"""
from __future__ import annotations

from pathlib import Path


class RouteScopeError(Exception):
    """Base exception for all routescope errors."""


class ScopeUnresolvedError(RouteScopeError):
    """A project or session scope was required but could not be derived."""
    def __init__(self, level: str, missing: str):
        self.level = level
        self.missing = missing
        super().__init__(
            f"Cannot write {level}-level config: {missing} could not be determined"
        )


class InvalidRoleError(RouteScopeError):
    """Requested router role is not one of the recognized roles."""
    def __init__(self, role: str, valid: tuple[str, ...]):
        self.role = role
        self.valid = valid
        super().__init__(
            f"Unknown role '{role}'. Valid roles: {', '.join(valid)}"
        )


class ConfigNotFoundError(RouteScopeError):
    """The global router document is missing or unreadable."""
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Router config not found or unreadable: {path}")


class NoModelMatchError(RouteScopeError):
    """A query matched no model in the catalog."""
    def __init__(self, query: str):
        self.query = query
        super().__init__(f"No models found matching: {query}")
