"""CLI entry point.

Usage:
    routescope list
    routescope query sonnet
    routescope set glm-5 --project
    routescope set m2.5 --role think
    routescope status
    routescope hook session-start < payload.json
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence

from rich.console import Console
from rich.table import Table

from routescope.engine.catalog import CatalogCache
from routescope.engine.config import ResolverContext, ResolverSettings
from routescope.engine.errors import NoModelMatchError, RouteScopeError
from routescope.engine.matcher import fuzzy_match, unique_matches
from routescope.engine.models import ROUTER_ROLES, ConfigLevel, EffectiveRouter
from routescope.engine.yaml_config import default_settings_path, load_yaml_settings
from routescope.shared.services.identity import resolve_identity
from routescope.shared.services.router_config import (
    layer_path,
    load_global_config,
    read_document,
    resolve_effective_router,
    roles_for_model,
    router_section,
    set_route,
    to_display_name,
)
from routescope.shared.services.session_cache import SessionCache, record_session_start

logger = logging.getLogger(__name__)

MAX_LISTED_MATCHES = 10

_SOURCE_LABELS = {
    "env": "env (session environment variable)",
    "cache": "cache (session-start hook record)",
    "mtime": "mtime (fallback, may be inaccurate)",
    "none": "not detected",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="routescope",
        description="Fuzzy model lookup and global/project/session router scopes",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("list", help="List registered models and the active router")

    query = sub.add_parser("query", help="Search models by a fuzzy query")
    query.add_argument("text", nargs="+")

    set_cmd = sub.add_parser("set", help="Route roles to the best-matching model")
    set_cmd.add_argument("text", nargs="+")
    scope = set_cmd.add_mutually_exclusive_group()
    scope.add_argument("--project", action="store_true", help="Write the project layer")
    scope.add_argument("--session", action="store_true", help="Write the session layer")
    set_cmd.add_argument(
        "--role", "-r",
        default=None,
        help=f"Only set this role ({', '.join(ROUTER_ROLES)})",
    )

    sub.add_parser("status", help="Show scope identity and the effective model")
    sub.add_parser("project", help="Show the project-level router")
    sub.add_parser("session", help="Show the session-level router")
    sub.add_parser("prune", help="Remove session cache records of exited processes")

    hook = sub.add_parser("hook", help="Entry points for host lifecycle hooks")
    hook.add_argument("event", choices=["session-start"])
    return parser


def _build_context(settings: ResolverSettings) -> ResolverContext:
    ctx = ResolverContext.from_env(settings=settings)
    ctx.settings = load_yaml_settings(
        default_settings_path(ctx.home, ctx.env), base=settings
    )
    return ctx


def _configure_logging(verbose: bool, level_name: str) -> None:
    level = logging.DEBUG if verbose else logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    # basicConfig is a no-op once handlers exist; the level still applies.
    logging.getLogger().setLevel(level)


def _cmd_list(ctx: ResolverContext, console: Console) -> int:
    config = load_global_config(ctx)
    if config is None:
        console.print(f"[red]Cannot read router config at {ctx.global_config_path}[/red]")
        return 1

    entries = CatalogCache().get_for_config(config).entries
    if not entries:
        console.print("[yellow]No models configured.[/yellow]")
    else:
        table = Table(title="Available models")
        table.add_column("Provider")
        table.add_column("Model")
        for entry in entries:
            table.add_row(entry.provider, entry.model)
        console.print(table)

    _print_router(console, resolve_effective_router(ctx))
    return 0


def _cmd_query(ctx: ResolverContext, console: Console, text: str) -> int:
    catalog = CatalogCache().get_for_config(load_global_config(ctx))
    if not catalog.entries:
        console.print("[yellow]No models available.[/yellow]")
        return 1

    matches = unique_matches(fuzzy_match(text, catalog.entries, catalog))
    if not matches:
        console.print(f"No models found matching: {text}")
        return 1

    table = Table(title=f'{len(matches)} model(s) matching "{text}"')
    table.add_column("")
    table.add_column("Model")
    table.add_column("Score", justify="right")
    for index, match in enumerate(matches[:MAX_LISTED_MATCHES]):
        table.add_row("▶" if index == 0 else "", match.full_name, f"{match.score:g}")
    console.print(table)
    if len(matches) > MAX_LISTED_MATCHES:
        console.print(f"  ... and {len(matches) - MAX_LISTED_MATCHES} more")
    return 0


def _cmd_set(
    ctx: ResolverContext,
    console: Console,
    text: str,
    level: ConfigLevel,
    role: str | None,
) -> int:
    catalog = CatalogCache().get_for_config(load_global_config(ctx))
    matches = unique_matches(fuzzy_match(text, catalog.entries, catalog))
    if not matches:
        raise NoModelMatchError(text)

    selected = matches[0]
    if len(matches) > 1:
        console.print(
            f"[yellow]Multiple matches; using {selected.full_name} "
            f"(next: {', '.join(m.full_name for m in matches[1:4])})[/yellow]"
        )
    path = set_route(ctx, selected.entry, level, role)
    console.print(
        f"[green]{level.value.capitalize()}-level: set "
        f"{role or 'all roles'} to {selected.full_name}[/green]"
    )
    console.print(f"  Config saved to: {path}")
    return 0


def _cmd_status(ctx: ResolverContext, console: Console) -> int:
    identity = resolve_identity(ctx)
    effective = resolve_effective_router(ctx, identity)
    config = load_global_config(ctx)
    providers = config.get("Providers") if config else None

    table = Table(show_header=False, title="routescope status")
    table.add_column("Key")
    table.add_column("Value")
    table.add_row("Router config", str(ctx.global_config_path))
    table.add_row(
        "Providers",
        str(len(providers)) if isinstance(providers, list) else "none configured",
    )
    table.add_row("Project ID", identity.project_id or "not detected")
    table.add_row("Session ID", identity.session_id or "not detected")
    table.add_row("Session source", _SOURCE_LABELS[identity.session_source.value])
    table.add_row("Current model", effective.display_model or "default")
    table.add_row("Model source", effective.level.value)
    console.print(table)
    return 0


def _cmd_layer(ctx: ResolverContext, console: Console, level: ConfigLevel) -> int:
    identity = resolve_identity(ctx)
    path = layer_path(ctx, level, identity)
    document = read_document(path)
    console.print(f"Project: {identity.project_id}")
    if level == ConfigLevel.SESSION:
        console.print(f"Session: {identity.session_id} ({identity.session_source.value})")
    if document is None:
        console.print(f"No {level.value} config file found. Expected path: {path}")
        return 0
    router = router_section(document)
    if not router:
        console.print(f"No Router config found in {level.value} config.")
        return 0
    console.print_json(json.dumps(router))
    return 0


def _cmd_hook(ctx: ResolverContext) -> int:
    try:
        raw = sys.stdin.read()
        payload = json.loads(raw) if raw.strip() else None
    except (OSError, ValueError):
        logger.debug("Ignoring unreadable hook payload", exc_info=True)
        return 0
    try:
        record_session_start(ctx, payload)
    except OSError:
        logger.debug("Could not cache session id", exc_info=True)
    return 0


def _print_router(console: Console, effective: EffectiveRouter) -> None:
    router = effective.router
    current = effective.primary_model
    table = Table(title=f"Router ({effective.level.value})")
    table.add_column("Role")
    table.add_column("Model")
    table.add_column("")
    active = set(roles_for_model(router, current))
    for role in ROUTER_ROLES:
        table.add_row(
            role,
            to_display_name(router.get(role)) or "N/A",
            "●" if role in active else "",
        )
    console.print(table)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = ResolverSettings.from_env()
    _configure_logging(args.verbose, settings.log_level)
    ctx = _build_context(settings)
    _configure_logging(args.verbose, ctx.settings.log_level)

    console = Console()
    command = args.command or "list"
    try:
        if command == "list":
            return _cmd_list(ctx, console)
        if command == "query":
            return _cmd_query(ctx, console, " ".join(args.text))
        if command == "set":
            level = ConfigLevel.GLOBAL
            if args.project:
                level = ConfigLevel.PROJECT
            elif args.session:
                level = ConfigLevel.SESSION
            return _cmd_set(ctx, console, " ".join(args.text), level, args.role)
        if command == "status":
            return _cmd_status(ctx, console)
        if command == "project":
            return _cmd_layer(ctx, console, ConfigLevel.PROJECT)
        if command == "session":
            return _cmd_layer(ctx, console, ConfigLevel.SESSION)
        if command == "prune":
            removed = SessionCache(ctx.session_cache_dir).prune_stale(ctx.is_alive)
            console.print(f"Removed {removed} stale session record(s)")
            return 0
        if command == "hook":
            return _cmd_hook(ctx)
    except RouteScopeError as exc:
        console.print(f"[red]{exc}[/red]")
        return 1
    parser.error(f"unknown command: {command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
