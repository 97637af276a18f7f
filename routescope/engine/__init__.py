"""routescope — fuzzy model lookup and layered router scope resolution."""
from .models import (
    ROUTER_ROLES,
    ConfigLevel,
    EffectiveRouter,
    ModelEntry,
    ScopeIdentity,
    ScoredModel,
    SessionCacheRecord,
    SessionSource,
    primary_model,
)
from .config import ResolverContext, ResolverSettings
from .errors import (
    ConfigNotFoundError,
    InvalidRoleError,
    NoModelMatchError,
    RouteScopeError,
    ScopeUnresolvedError,
)

__all__ = [
    # Models
    "ROUTER_ROLES",
    "ConfigLevel",
    "EffectiveRouter",
    "ModelEntry",
    "ScopeIdentity",
    "ScoredModel",
    "SessionCacheRecord",
    "SessionSource",
    "primary_model",
    # Config
    "ResolverContext",
    "ResolverSettings",
    # YAML settings (lazy import)
    "load_yaml_settings",
    # Aliases / catalog / matching (lazy import)
    "generate_model_aliases",
    "generate_provider_aliases",
    "Catalog",
    "CatalogCache",
    "build_catalog",
    "entries_from_config",
    "fuzzy_match",
    "best_match",
    "unique_matches",
    # Errors
    "ConfigNotFoundError",
    "InvalidRoleError",
    "NoModelMatchError",
    "RouteScopeError",
    "ScopeUnresolvedError",
]


def __getattr__(name: str):
    if name == "load_yaml_settings":
        from .yaml_config import load_yaml_settings
        return load_yaml_settings
    if name == "generate_model_aliases":
        from .aliases import generate_model_aliases
        return generate_model_aliases
    if name == "generate_provider_aliases":
        from .aliases import generate_provider_aliases
        return generate_provider_aliases
    if name == "Catalog":
        from .catalog import Catalog
        return Catalog
    if name == "CatalogCache":
        from .catalog import CatalogCache
        return CatalogCache
    if name == "build_catalog":
        from .catalog import build_catalog
        return build_catalog
    if name == "entries_from_config":
        from .catalog import entries_from_config
        return entries_from_config
    if name == "fuzzy_match":
        from .matcher import fuzzy_match
        return fuzzy_match
    if name == "best_match":
        from .matcher import best_match
        return best_match
    if name == "unique_matches":
        from .matcher import unique_matches
        return unique_matches
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
