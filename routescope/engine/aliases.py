"""Dynamic alias generation for model and provider names.

Aliases are derived from the shape of a name alone, so any model that
shows up in a provider registry is immediately addressable by the short
forms people actually type::

    glm-5            -> glm5, g5
    MiniMax-M2.5     -> minimaxm2.5, minimaxm25, mm, mm2.5, mm25
    claude-sonnet-4  -> claudesonnet4, cs4, sonnet4, s4, claude4
    kimi-k2.5        -> kimik2.5, kimik25, kk2.5, kk25

There is no hand-maintained model table. Provider names get the same
treatment plus a small table of conventional short forms.
"""
from __future__ import annotations

import re

_SEPARATORS = re.compile(r"[-_\s]+")
_VERSION = re.compile(r"^\d+(?:\.\d+)?$")
_INTEGER = re.compile(r"^\d+$")

# Conventional provider short forms, triggered by substring containment.
# Enrichment only: providers absent from this table still match through
# their lowercase, separator-free and initialism forms.
PROVIDER_SHORT_FORMS: dict[str, tuple[str, ...]] = {
    "zhipu": ("zp",),
    "minimax": ("mm", "min"),
    "openrouter": ("or",),
    "doubao": ("db",),
    "deepseek": ("ds",),
    "claude": ("cl",),
    "anthropic": ("ant", "ap"),
}


def strip_separators(text: str) -> str:
    """Remove hyphens, underscores and whitespace."""
    return _SEPARATORS.sub("", text)


def split_tokens(text: str) -> list[str]:
    """Split on separator runs, dropping empty tokens."""
    return [token for token in _SEPARATORS.split(text) if token]


def _initials(tokens: list[str]) -> str:
    return "".join(token[0] for token in tokens)


def generate_model_aliases(model_name: str) -> set[str]:
    """Return the lowercase strings a user might type to mean *model_name*.

    Deterministic and total: odd input only shrinks the result, which
    always holds at least the lowercase and separator-free forms.
    """
    lower = (model_name or "").lower()
    no_sep = strip_separators(lower)
    tokens = split_tokens(lower)
    aliases: set[str] = {no_sep}

    if len(tokens) >= 2:
        initials = _initials(tokens)
        if len(initials) >= 2:
            aliases.add(initials)

        last = tokens[-1]
        if _VERSION.match(last):
            version = last
            version_no_dot = version.replace(".", "", 1)
            prefix = _initials(tokens[:-1])
            aliases.add(prefix + version)
            aliases.add(prefix + version_no_dot)
            aliases.add(tokens[0] + version)
            aliases.add(tokens[0] + version_no_dot)

        if len(tokens) >= 3 and _INTEGER.match(last):
            series = tokens[1]
            aliases.add(series + last)
            aliases.add(series[0] + last)
            aliases.add(tokens[0][0] + _initials(tokens[1:]))

        if len(tokens) == 2:
            aliases.add(tokens[0][0] + tokens[1])
            aliases.add(tokens[0][0] + tokens[1].replace(".", ""))

    aliases.update({alias.replace(".", "") for alias in aliases})

    aliases.add(lower)
    if "-" in lower:
        aliases.add(lower.replace("-", ""))
        aliases.add(lower.replace("-", "_"))

    return aliases


def generate_provider_aliases(provider_name: str) -> set[str]:
    """Return lowercase aliases for a provider name.

    ``"Zhipu GLM"`` yields ``zhipu glm``, ``zhipuglm``, ``zg`` and ``zp``.
    """
    lower = (provider_name or "").lower()
    aliases: set[str] = {lower, strip_separators(lower)}

    words = split_tokens(lower)
    if len(words) > 1:
        aliases.add(_initials(words))

    for key, forms in PROVIDER_SHORT_FORMS.items():
        if key in lower:
            aliases.update(forms)

    aliases.discard("")
    return aliases
