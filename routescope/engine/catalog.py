"""Model catalog built from a provider registry snapshot.

The catalog holds a flat alias -> full name map used for exact alias
resolution, plus per-provider alias lists. Collisions are settled by
registry order: the first entry to claim an alias keeps it and later
claims are dropped. This is an accepted, deterministic ambiguity rather
than an error.
"""
from __future__ import annotations

import json
import logging
import zlib
from dataclasses import dataclass, field
from typing import Any

from .aliases import generate_model_aliases, generate_provider_aliases, strip_separators
from .models import ModelEntry

logger = logging.getLogger(__name__)


@dataclass
class Catalog:
    """Lookup structure derived from an ordered list of model entries."""
    entries: tuple[ModelEntry, ...] = ()
    aliases: dict[str, str] = field(default_factory=dict)
    provider_aliases: dict[str, list[str]] = field(default_factory=dict)
    fingerprint: str = ""

    def resolve(self, alias: str) -> str | None:
        """Return the full name that owns *alias*, if any."""
        return self.aliases.get(alias)

    def aliases_for_provider(self, provider: str) -> list[str]:
        cached = self.provider_aliases.get(provider)
        if cached is not None:
            return cached
        return sorted(generate_provider_aliases(provider))

    def __len__(self) -> int:
        return len(self.entries)


def entries_from_config(config: dict[str, Any] | None) -> list[ModelEntry]:
    """Flatten a router document's ``Providers`` array into model entries.

    Providers without a usable name and non-string model names are
    skipped; repeated (provider, model) pairs keep their first position.
    """
    if not isinstance(config, dict):
        return []
    providers = config.get("Providers")
    if not isinstance(providers, list):
        return []

    entries: list[ModelEntry] = []
    seen: set[tuple[str, str]] = set()
    for provider in providers:
        if not isinstance(provider, dict):
            continue
        name = provider.get("name")
        models = provider.get("models")
        if not isinstance(name, str) or not name or not isinstance(models, list):
            continue
        for model in models:
            if not isinstance(model, str) or not model:
                continue
            key = (name, model)
            if key in seen:
                continue
            seen.add(key)
            entries.append(ModelEntry(provider=name, model=model))
    return entries


def registry_fingerprint(providers: Any) -> str:
    """Cheap change detector for a ``Providers`` array.

    Not a cryptographic hash; it only decides whether cached alias data
    must be rebuilt.
    """
    blob = json.dumps(providers, sort_keys=True, default=str).encode("utf-8")
    count = len(providers) if isinstance(providers, list) else 0
    return f"{len(blob)}_{count}_{zlib.crc32(blob):08x}"


def _claim(aliases: dict[str, str], alias: str, full_name: str) -> None:
    if not alias:
        return
    owner = aliases.get(alias)
    if owner is None:
        aliases[alias] = full_name
    elif owner != full_name:
        logger.debug(
            "Alias collision: %r kept by %s, dropped for %s",
            alias, owner, full_name,
        )


def build_catalog(entries: list[ModelEntry], *, fingerprint: str = "") -> Catalog:
    """Build the alias map and provider alias lists for *entries*.

    Canonical model spellings (lowercase and separator-free) claim their
    slots before any generated alias, so a model's own name is never
    shadowed by another model's abbreviation.
    """
    ordered = tuple(entries)
    aliases: dict[str, str] = {}
    provider_aliases: dict[str, list[str]] = {}

    for entry in ordered:
        lower = entry.model.lower()
        _claim(aliases, lower, entry.full_name)
        _claim(aliases, strip_separators(lower), entry.full_name)

    for entry in ordered:
        if entry.provider not in provider_aliases:
            provider_aliases[entry.provider] = sorted(
                generate_provider_aliases(entry.provider)
            )
        for alias in sorted(generate_model_aliases(entry.model)):
            _claim(aliases, alias, entry.full_name)

    logger.debug(
        "Catalog built: %d models, %d providers, %d aliases",
        len(ordered), len(provider_aliases), len(aliases),
    )
    return Catalog(
        entries=ordered,
        aliases=aliases,
        provider_aliases=provider_aliases,
        fingerprint=fingerprint,
    )


class CatalogCache:
    """Keeps the last built catalog and rebuilds only on registry change."""

    def __init__(self) -> None:
        self._catalog: Catalog | None = None
        self._builds = 0

    @property
    def builds(self) -> int:
        """Number of times a catalog has actually been built."""
        return self._builds

    def get(self, providers: Any) -> Catalog:
        fingerprint = registry_fingerprint(providers)
        if self._catalog is not None and self._catalog.fingerprint == fingerprint:
            return self._catalog
        entries = entries_from_config({"Providers": providers})
        self._catalog = build_catalog(entries, fingerprint=fingerprint)
        self._builds += 1
        return self._catalog

    def get_for_config(self, config: dict[str, Any] | None) -> Catalog:
        """Catalog for a full router document (uses its ``Providers``)."""
        providers = config.get("Providers") if isinstance(config, dict) else None
        return self.get(providers if isinstance(providers, list) else [])

    def clear(self) -> None:
        self._catalog = None
