"""Tests for fuzzy model matching against a registry."""
from __future__ import annotations

from routescope.engine.catalog import build_catalog
from routescope.engine.matcher import (
    best_match,
    fuzzy_match,
    normalize_query,
    unique_matches,
)
from routescope.engine.models import ModelEntry


GLM = ModelEntry("glm", "glm-5")
MINIMAX = ModelEntry("minimax", "MiniMax-M2.5")
REGISTRY = [GLM, MINIMAX]


def _names(results) -> list[str]:
    return [r.full_name for r in results]


class TestRegistryExamples:
    """Typical short queries against a two-provider registry."""

    def test_short_alias_ranks_glm_first(self):
        """'g5' is a generated alias of glm-5."""
        results = fuzzy_match("g5", REGISTRY)
        assert results[0].full_name == "glm/glm-5"
        assert results[0].score == 92

    def test_dotted_version_ranks_minimax_first(self):
        """'m2.5' matches only the MiniMax model."""
        results = fuzzy_match("m2.5", REGISTRY)
        assert _names(results) == ["minimax/MiniMax-M2.5"]
        assert results[0].score == 85

    def test_full_name_scores_100(self):
        """The exact provider/model name scores 100."""
        results = fuzzy_match("glm/glm-5", REGISTRY)
        assert _names(results) == ["glm/glm-5"]
        assert results[0].score == 100

    def test_catalog_alias_hit_scores_100(self):
        """With a catalog, the alias owner scores 100."""
        catalog = build_catalog(REGISTRY)
        results = fuzzy_match("g5", REGISTRY, catalog)
        assert results[0].full_name == "glm/glm-5"
        assert results[0].score == 100


class TestScoringLadder:
    """Individual rungs of the scoring ladder."""

    def test_full_name_is_case_insensitive(self):
        """Full-name comparison ignores case."""
        results = fuzzy_match("MINIMAX/minimax-m2.5", REGISTRY)
        assert results[0].score == 100

    def test_model_name_exact(self):
        """Raw or separator-free model name scores 95."""
        assert fuzzy_match("glm-5", REGISTRY)[0].score == 95
        assert fuzzy_match("glm 5", REGISTRY)[0].score == 95

    def test_exact_full_name_outranks_catalog_alias_owner(self):
        """No other candidate reaches 100 when a full name matches exactly."""
        entries = [ModelEntry("glm", "glm-5"), ModelEntry("g5", "g5")]
        catalog = build_catalog(entries)
        results = fuzzy_match("g5/g5", entries, catalog)
        assert results[0].full_name == "g5/g5"
        assert results[0].score == 100
        assert all(r.score < 100 for r in results[1:])

    def test_provider_model_query(self):
        """provider/model queries match the provider or one of its aliases."""
        entries = [ModelEntry("deepseek", "deepseek-chat")]
        assert fuzzy_match("deep/chat", entries)[0].score == 90
        assert fuzzy_match("ds/chat", entries)[0].score == 85

    def test_provider_model_query_requires_model_part(self):
        """A provider/model query whose parts do not match yields nothing."""
        entries = [ModelEntry("deepseek", "deepseek-chat")]
        assert fuzzy_match("ds/reasoner", entries) == []
        assert fuzzy_match("xx/chat", entries) == []

    def test_separator_free_containment(self):
        """Substring of the separator-free model name scores 85."""
        assert fuzzy_match("maxm2", [MINIMAX])[0].score == 85

    def test_full_name_containment_via_provider(self):
        """A provider name inside the full name scores 80."""
        entries = [ModelEntry("zhipu", "glm-4")]
        assert fuzzy_match("zhipu", entries)[0].score == 80

    def test_provider_alias(self):
        """An exact provider alias scores 65."""
        entries = [ModelEntry("deepseek", "chat-v3")]
        assert fuzzy_match("ds", entries)[0].score == 65

    def test_token_fallback_on_model_alias(self):
        """A token found only inside a model alias scores 20."""
        entries = [ModelEntry("anthropic", "claude-sonnet-4")]
        # "de4" only occurs inside the generated alias "claude4".
        assert fuzzy_match("de4", entries)[0].score == 20

    def test_token_fallback_on_provider_alias_counts_half(self):
        """A token found only in a provider alias scores 10."""
        entries = [ModelEntry("Zhipu GLM", "x-1")]
        assert fuzzy_match("ipug", entries)[0].score == 10


class TestEmptyResults:
    """Queries that match nothing return an empty list."""

    def test_blank_and_separator_only_queries(self):
        """Queries without alphanumerics match nothing."""
        for query in ("", "   ", "---", "...", "/"):
            assert fuzzy_match(query, REGISTRY) == []

    def test_no_overlap_returns_empty(self):
        """An unrelated query returns no candidates."""
        assert fuzzy_match("zzzz", REGISTRY) == []

    def test_no_entries(self):
        """An empty registry returns no candidates."""
        assert fuzzy_match("g5", []) == []

    def test_never_returns_non_positive_scores(self):
        """Every returned candidate has a positive score."""
        for query in ("g5", "m", "glm", "mini", "5", "x/y"):
            assert all(r.score > 0 for r in fuzzy_match(query, REGISTRY))


class TestOrdering:
    """Result ordering."""

    def test_ties_keep_registry_order(self):
        """Equal scores keep the order the entries were given in."""
        a = ModelEntry("p1", "glm-5")
        b = ModelEntry("p2", "glm-5")
        assert _names(fuzzy_match("g5", [a, b])) == ["p1/glm-5", "p2/glm-5"]
        assert _names(fuzzy_match("g5", [b, a])) == ["p2/glm-5", "p1/glm-5"]

    def test_sorted_descending(self):
        """Results are sorted best first."""
        entries = [ModelEntry("zhipu", "glm-4"), GLM, ModelEntry("glm", "glm-4.5-air")]
        scores = [r.score for r in fuzzy_match("glm", entries)]
        assert scores == sorted(scores, reverse=True)

    def test_accepts_generators(self):
        """Entries may be any iterable."""
        results = fuzzy_match("g5", (e for e in REGISTRY))
        assert _names(results) == ["glm/glm-5"]


class TestHelpers:
    """normalize_query, unique_matches and best_match."""

    def test_normalize_query(self):
        """Separators and dots are stripped after lowercasing."""
        assert normalize_query("MiniMax M2.5") == "minimaxm25"
        assert normalize_query("glm_5-x") == "glm5x"

    def test_unique_matches_keeps_first(self):
        """Repeated full names collapse to the first occurrence."""
        results = fuzzy_match("g5", [GLM, GLM])
        assert len(results) == 2
        assert _names(unique_matches(results)) == ["glm/glm-5"]

    def test_best_match(self):
        """best_match returns the top candidate or None."""
        assert best_match("m2.5", REGISTRY).full_name == "minimax/MiniMax-M2.5"
        assert best_match("zzzz", REGISTRY) is None
