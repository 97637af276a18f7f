"""Layered router configuration — global, project and session documents.

Storage layout:
    ~/.claude-code-router/config.json                      global
    ~/.claude-code-router/{project_id}/config.json         project
    ~/.claude-code-router/{project_id}/{session_id}.json   session

Each document carries a ``Router`` object mapping role -> "provider,model".
A narrower layer applies only when its ``Router`` has at least one
non-empty value, and then replaces the broader one entirely; roles are
never merged across layers. Missing or unparseable documents simply do
not apply.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from routescope.engine.catalog import entries_from_config
from routescope.engine.config import ResolverContext
from routescope.engine.errors import (
    ConfigNotFoundError,
    InvalidRoleError,
    ScopeUnresolvedError,
)
from routescope.engine.models import (
    ROUTER_ROLES,
    ConfigLevel,
    EffectiveRouter,
    ModelEntry,
    ScopeIdentity,
)
from routescope.shared.services.durable_write import atomic_write_json
from routescope.shared.services.identity import resolve_identity

logger = logging.getLogger(__name__)


# ── Value formats ────────────────────────────────────────────


def to_router_value(full_name: str) -> str:
    """``provider/model`` -> ``provider,model`` (the persisted form)."""
    return full_name.replace("/", ",", 1)


def to_display_name(value: str | None) -> str | None:
    """``provider,model`` -> ``provider/model``."""
    if not value:
        return None
    return value.replace(",", "/", 1)


def model_matches(value: str | None, current: str | None) -> bool:
    """True when a role *value* refers to *current* in either separator form."""
    if not value or not current:
        return False
    if value == current:
        return True
    return to_display_name(value) == to_display_name(current)


def roles_for_model(router: dict[str, Any], current: str | None) -> list[str]:
    """Roles in *router* that point at *current*, in display order."""
    return [
        role for role in ROUTER_ROLES
        if model_matches(router.get(role), current)
    ]


def routes_defined(router: Any) -> bool:
    """A router section counts only if some role has a non-empty value."""
    if not isinstance(router, dict):
        return False
    return any(isinstance(v, str) and v for v in router.values())


# ── Reading ──────────────────────────────────────────────────


def read_document(path: Path) -> dict[str, Any] | None:
    """Load a JSON object from *path*; None if missing, unreadable or not an object."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Failed to read %s: %s", path, exc)
        return None
    try:
        data = json.loads(text)
    except ValueError as exc:
        logger.warning("Ignoring unparseable config %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level is not an object", path)
        return None
    return data


def router_section(document: dict[str, Any] | None) -> dict[str, str]:
    if not document:
        return {}
    router = document.get("Router")
    return dict(router) if isinstance(router, dict) else {}


def load_global_config(ctx: ResolverContext) -> dict[str, Any] | None:
    return read_document(ctx.global_config_path)


def load_catalog_entries(ctx: ResolverContext) -> list[ModelEntry]:
    """Models registered in the global document's ``Providers``."""
    return entries_from_config(load_global_config(ctx))


def resolve_effective_router(
    ctx: ResolverContext,
    identity: ScopeIdentity | None = None,
) -> EffectiveRouter:
    """Pick the routing section that applies right now.

    Always returns a result: in the worst case an empty global router.
    """
    if identity is None:
        identity = resolve_identity(ctx)

    global_path = ctx.global_config_path
    global_doc = read_document(global_path)
    effective = EffectiveRouter(
        level=ConfigLevel.GLOBAL,
        router=router_section(global_doc),
        identity=identity,
        source_path=global_path if global_doc is not None else None,
    )

    if identity.has_project:
        project_path = ctx.project_config_path(identity.project_id)
        project_router = router_section(read_document(project_path))
        if routes_defined(project_router):
            effective = EffectiveRouter(
                level=ConfigLevel.PROJECT,
                router=project_router,
                identity=identity,
                source_path=project_path,
            )

    if identity.has_session:
        session_path = ctx.session_config_path(identity.project_id, identity.session_id)
        session_router = router_section(read_document(session_path))
        if routes_defined(session_router):
            effective = EffectiveRouter(
                level=ConfigLevel.SESSION,
                router=session_router,
                identity=identity,
                source_path=session_path,
            )

    logger.debug(
        "Effective router: level=%s project=%s session=%s (%s)",
        effective.level.value,
        identity.project_id,
        identity.session_id,
        identity.session_source.value,
    )
    return effective


# ── Writing ──────────────────────────────────────────────────


def layer_path(
    ctx: ResolverContext,
    level: ConfigLevel,
    identity: ScopeIdentity,
) -> Path:
    """Document path for *level*; raises when the scope is unknown."""
    if level == ConfigLevel.GLOBAL:
        return ctx.global_config_path
    if not identity.project_id:
        raise ScopeUnresolvedError(level.value, "project")
    if level == ConfigLevel.PROJECT:
        return ctx.project_config_path(identity.project_id)
    if not identity.session_id:
        raise ScopeUnresolvedError(level.value, "session")
    return ctx.session_config_path(identity.project_id, identity.session_id)


def _identity_for(ctx: ResolverContext, level: ConfigLevel, identity: ScopeIdentity | None) -> ScopeIdentity:
    if identity is not None or level == ConfigLevel.GLOBAL:
        return identity or ScopeIdentity()
    return resolve_identity(ctx)


def _load_for_update(path: Path, level: ConfigLevel) -> dict[str, Any]:
    document = read_document(path)
    if document is None:
        if level == ConfigLevel.GLOBAL:
            raise ConfigNotFoundError(path)
        return {}
    return document


def set_route(
    ctx: ResolverContext,
    entry: ModelEntry,
    level: ConfigLevel | str = ConfigLevel.GLOBAL,
    role: str | None = None,
    identity: ScopeIdentity | None = None,
) -> Path:
    """Point *role* (or every role) of the *level* document at *entry*.

    The document is re-read immediately before it is rewritten so that a
    concurrent writer's other keys survive; the write itself is
    last-writer-wins.
    """
    level = ConfigLevel(level)
    if role is not None and role not in ROUTER_ROLES:
        raise InvalidRoleError(role, ROUTER_ROLES)

    identity = _identity_for(ctx, level, identity)
    path = layer_path(ctx, level, identity)
    value = to_router_value(entry.full_name)

    document = _load_for_update(path, level)
    router = document.get("Router")
    if not isinstance(router, dict):
        router = {}
    if role is None:
        for name in ROUTER_ROLES:
            router[name] = value
    else:
        router[role] = value
    document["Router"] = router

    atomic_write_json(path, document)
    logger.info(
        "Set %s-level %s to %s (%s)",
        level.value, role or "all roles", entry.full_name, path,
    )
    return path


def clear_routes(
    ctx: ResolverContext,
    level: ConfigLevel | str,
    identity: ScopeIdentity | None = None,
) -> Path | None:
    """Empty the project or session ``Router`` so that layer stops applying.

    Returns the path written, or None when there was no document.
    """
    level = ConfigLevel(level)
    if level == ConfigLevel.GLOBAL:
        raise ValueError("the global router cannot be cleared")
    identity = _identity_for(ctx, level, identity)
    path = layer_path(ctx, level, identity)
    document = read_document(path)
    if document is None:
        return None
    document["Router"] = {}
    atomic_write_json(path, document)
    logger.info("Cleared %s-level routes (%s)", level.value, path)
    return path
