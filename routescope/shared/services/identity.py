"""Scope identity — which project and session an invocation belongs to.

Project ids follow the session-log store's directory naming: the
working directory path with every separator turned into a dash
(``/home/user/proj`` -> ``-home-user-proj``).

Session ids are discovered by an ordered list of strategies; the first
one that produces an id wins and its source is reported alongside it:

1. ``env``   an explicit environment variable
2. ``cache`` a session-start cache record found by walking the process
             ancestry (stale records are removed on the way)
3. ``mtime`` the most recently modified session log of the project;
             a guess that is wrong when several sessions share a project
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from routescope.engine.config import ResolverContext
from routescope.engine.models import ScopeIdentity, SessionSource
from routescope.shared.services.session_cache import SessionCache

logger = logging.getLogger(__name__)

_PATH_SEPARATORS = re.compile(r"[/\\]")

SESSION_LOG_SUFFIX = ".jsonl"


def encode_project_path(cwd: str | os.PathLike[str]) -> str:
    """Encode a working directory the way the session-log store names it.

    A leading separator becomes a leading dash and every other separator
    becomes a dash as well.
    """
    text = os.fspath(cwd)
    if text[:1] in ("/", "\\"):
        text = text[1:]
    return "-" + _PATH_SEPARATORS.sub("-", text)


def resolve_project_id(cwd: str | os.PathLike[str], projects_dir: Path) -> str | None:
    """Find the project directory for *cwd* among the known projects.

    An exact encoded match wins. Otherwise directories ending in
    ``-<basename>`` are considered: a single candidate is used as-is and
    among several the one with the most dashes (the most specific path)
    wins. Returns None when nothing matches.
    """
    try:
        names = sorted(os.listdir(projects_dir))
    except OSError:
        return None

    encoded = encode_project_path(cwd)
    if encoded in names:
        return encoded

    folder = Path(os.fspath(cwd)).name
    if not folder:
        return None
    suffix = "-" + folder
    candidates = [
        name for name in names
        if name.endswith(suffix) and (projects_dir / name).is_dir()
    ]
    if not candidates:
        logger.debug("No project directory matches %s", cwd)
        return None
    if len(candidates) > 1:
        logger.debug(
            "Ambiguous project for %s: %s; using most specific",
            cwd, ", ".join(candidates),
        )
        # Stable: equal dash counts keep name order.
        candidates.sort(key=lambda name: name.count("-"), reverse=True)
    return candidates[0]


class SessionStrategy:
    """One way of discovering the current session id."""

    source: SessionSource = SessionSource.NONE

    def resolve(self, ctx: ResolverContext, project_id: str | None) -> str | None:
        raise NotImplementedError


class EnvSessionStrategy(SessionStrategy):
    source = SessionSource.ENV

    def resolve(self, ctx: ResolverContext, project_id: str | None) -> str | None:
        value = ctx.env.get(ctx.settings.session_env_var, "")
        return value.strip() or None


class CacheSessionStrategy(SessionStrategy):
    source = SessionSource.CACHE

    def resolve(self, ctx: ResolverContext, project_id: str | None) -> str | None:
        start = ctx.parent_of(ctx.pid)
        if start is None:
            return None
        record = SessionCache(ctx.session_cache_dir).find_in_ancestry(
            start,
            ctx.parent_of,
            ctx.is_alive,
            ctx.settings.max_ancestry_hops,
        )
        return record.session_id if record is not None else None


class MtimeSessionStrategy(SessionStrategy):
    source = SessionSource.MTIME

    def resolve(self, ctx: ResolverContext, project_id: str | None) -> str | None:
        if not project_id:
            return None
        project_dir = ctx.projects_dir / project_id
        newest: tuple[float, str] | None = None
        try:
            entries = sorted(os.scandir(project_dir), key=lambda e: e.name)
        except OSError:
            return None
        for entry in entries:
            if not entry.name.endswith(SESSION_LOG_SUFFIX):
                continue
            try:
                if not entry.is_file():
                    continue
                mtime = entry.stat().st_mtime
            except OSError:
                continue
            if newest is None or mtime > newest[0]:
                newest = (mtime, entry.name)
        if newest is None:
            return None
        return newest[1][: -len(SESSION_LOG_SUFFIX)]


DEFAULT_SESSION_STRATEGIES: tuple[SessionStrategy, ...] = (
    EnvSessionStrategy(),
    CacheSessionStrategy(),
    MtimeSessionStrategy(),
)


def resolve_session(
    ctx: ResolverContext,
    project_id: str | None,
    strategies: tuple[SessionStrategy, ...] = DEFAULT_SESSION_STRATEGIES,
) -> tuple[str | None, SessionSource]:
    """Try each strategy in order; the first id found wins."""
    for strategy in strategies:
        session_id = strategy.resolve(ctx, project_id)
        if session_id:
            logger.debug("Session %s resolved via %s", session_id, strategy.source.value)
            return session_id, strategy.source
    return None, SessionSource.NONE


def resolve_identity(
    ctx: ResolverContext,
    strategies: tuple[SessionStrategy, ...] = DEFAULT_SESSION_STRATEGIES,
) -> ScopeIdentity:
    """Derive project and session identity for *ctx*. Never raises."""
    project_id = resolve_project_id(ctx.cwd, ctx.projects_dir)
    session_id, source = resolve_session(ctx, project_id, strategies)
    return ScopeIdentity(
        project_id=project_id,
        session_id=session_id,
        session_source=source,
    )
