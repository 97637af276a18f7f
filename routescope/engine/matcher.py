"""Fuzzy matching of free-text queries against a model catalog.

Each candidate is scored by a fixed ladder; the first rule that applies
decides the score:

    100  query resolves through the catalog alias map to this model,
         or equals the full ``provider/model`` name
     95  query equals the model name (raw or separator-free)
     92  query is one of the model's generated aliases
  90/85  ``provider/model`` query: provider part is a substring of the
         provider (90) or of one of its aliases (85), model part a
         substring of the model
     85  separator-free model name contains the separator-free query
  80/75  full name, then model name, contains the query
  70/68  full name or separator-free model starts with the query,
         then model name starts with it
     65  query is one of the provider's aliases
     60  provider equals or contains the query
   20*n  fallback: n query tokens found in the model or its aliases,
         a provider-alias-only hit counting half

Candidates scoring zero are dropped. The sort is stable, so equal
scores keep registry order.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from .aliases import generate_model_aliases, generate_provider_aliases
from .catalog import Catalog
from .models import ModelEntry, ScoredModel

logger = logging.getLogger(__name__)

SCORE_EXACT = 100
SCORE_MODEL_EXACT = 95
SCORE_MODEL_ALIAS = 92
SCORE_PROVIDER_MODEL = 90
SCORE_PROVIDER_ALIAS_MODEL = 85
SCORE_MODEL_CONTAINS_NORMALIZED = 85
SCORE_FULL_CONTAINS = 80
SCORE_MODEL_CONTAINS = 75
SCORE_PREFIX = 70
SCORE_MODEL_PREFIX = 68
SCORE_PROVIDER_ALIAS = 65
SCORE_PROVIDER = 60
SCORE_TOKEN = 20

_NORMALIZE = re.compile(r"[-_\s.]+")
_TOKEN_SPLIT = re.compile(r"[\s\-_/]+")


def normalize_query(text: str) -> str:
    """Lowercase and drop hyphens, underscores, whitespace and dots."""
    return _NORMALIZE.sub("", text.lower())


def _score(
    entry: ModelEntry,
    lower_query: str,
    normalized_query: str,
    alias_owner: str | None,
    provider_aliases: Iterable[str],
) -> float:
    full = entry.full_name.lower()
    provider = entry.provider.lower()
    model = entry.model.lower()
    model_no_sep = _NORMALIZE.sub("", model)
    model_aliases = generate_model_aliases(entry.model)
    provider_aliases = list(provider_aliases)

    if alias_owner == entry.full_name or full == lower_query:
        return SCORE_EXACT

    if model == lower_query or model_no_sep == normalized_query:
        return SCORE_MODEL_EXACT

    if normalized_query in model_aliases or lower_query in model_aliases:
        return SCORE_MODEL_ALIAS

    # An explicit provider/model query is decided here.
    if "/" in lower_query:
        provider_part, _, model_part = lower_query.partition("/")
        if model_part not in model:
            return 0
        if provider_part in provider:
            return SCORE_PROVIDER_MODEL
        if any(provider_part in alias for alias in provider_aliases):
            return SCORE_PROVIDER_ALIAS_MODEL
        return 0

    if normalized_query in model_no_sep:
        return SCORE_MODEL_CONTAINS_NORMALIZED

    if lower_query in full:
        return SCORE_FULL_CONTAINS
    if lower_query in model:
        return SCORE_MODEL_CONTAINS

    if (
        full.startswith(lower_query)
        or full.startswith(normalized_query)
        or model_no_sep.startswith(normalized_query)
        or model_no_sep.startswith(lower_query)
    ):
        return SCORE_PREFIX
    if model.startswith(lower_query):
        return SCORE_MODEL_PREFIX

    if normalized_query in provider_aliases or lower_query in provider_aliases:
        return SCORE_PROVIDER_ALIAS

    if provider == lower_query or lower_query in provider:
        return SCORE_PROVIDER

    hits = 0.0
    for token in _TOKEN_SPLIT.split(normalized_query):
        if len(token) < 2:
            continue
        if token in model_no_sep or any(token in alias for alias in model_aliases):
            hits += 1
        elif any(token in alias for alias in provider_aliases):
            hits += 0.5
    return hits * SCORE_TOKEN


def fuzzy_match(
    query: str,
    entries: Iterable[ModelEntry],
    catalog: Catalog | None = None,
) -> list[ScoredModel]:
    """Score *entries* against *query*, best first.

    When *catalog* is given, its alias map settles exact alias hits
    (score 100) and its provider alias lists are reused; otherwise
    aliases are generated per candidate. Returns an empty list when
    nothing matches; never raises for odd input.
    """
    lower_query = (query or "").strip().lower()
    normalized_query = normalize_query(lower_query)
    if not any(ch.isalnum() for ch in normalized_query):
        return []

    entries = list(entries)
    alias_owner: str | None = None
    exact_full_name = any(e.full_name.lower() == lower_query for e in entries)
    if catalog is not None and not exact_full_name:
        alias_owner = catalog.resolve(normalized_query) or catalog.resolve(lower_query)

    provider_cache: dict[str, list[str]] = {}
    scored: list[ScoredModel] = []
    for entry in entries:
        aliases = provider_cache.get(entry.provider)
        if aliases is None:
            if catalog is not None:
                aliases = catalog.aliases_for_provider(entry.provider)
            else:
                aliases = sorted(generate_provider_aliases(entry.provider))
            provider_cache[entry.provider] = aliases
        score = _score(entry, lower_query, normalized_query, alias_owner, aliases)
        if score > 0:
            scored.append(ScoredModel(entry=entry, score=score))

    scored.sort(key=lambda item: item.score, reverse=True)
    logger.debug(
        "fuzzy_match(%r): %d candidate(s), top=%s",
        query,
        len(scored),
        scored[0].full_name if scored else None,
    )
    return scored


def unique_matches(matches: Iterable[ScoredModel]) -> list[ScoredModel]:
    """Drop repeated full names, keeping the first (highest-scored) one."""
    seen: set[str] = set()
    unique: list[ScoredModel] = []
    for match in matches:
        if match.full_name in seen:
            continue
        seen.add(match.full_name)
        unique.append(match)
    return unique


def best_match(
    query: str,
    entries: Iterable[ModelEntry],
    catalog: Catalog | None = None,
) -> ScoredModel | None:
    """Top unique match for *query*, or ``None`` when nothing matches."""
    matches = unique_matches(fuzzy_match(query, entries, catalog))
    return matches[0] if matches else None
