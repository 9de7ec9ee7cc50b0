"""polyfunc — microservice scaffolding with smart language selection.

Ranks implementation languages against weighted requirements and
scaffolds services in the best fit.
"""

from __future__ import annotations

__version__ = "0.1.0"

from polyfunc.config import Config, ConfigError, deep_merge, default_config
from polyfunc.profiles import (
    CHARACTERISTICS,
    LanguageProfile,
    Library,
    ProfileRegistry,
    ScoreResult,
    UseCase,
    builtin_registry,
    create_profile,
    find_best,
    normalize_query,
    rank,
    score,
)


def recommend(query: dict, registry: ProfileRegistry | None = None) -> ScoreResult:
    """Pick the best language for a requirement query.

    Args:
        query: Weighted requirements, either flat
            (``{"performance": {"weight": 1}, "useCase": "api"}``) or in the
            nested shape returned by requirement analysis.
        registry: Profiles to choose from. Defaults to the built-in catalog.

    Returns:
        ScoreResult naming the winning language and its score.
    """
    if registry is None:
        registry = builtin_registry()
    return find_best(registry, normalize_query(query))


__all__ = [
    "CHARACTERISTICS",
    "Config",
    "ConfigError",
    "LanguageProfile",
    "Library",
    "ProfileRegistry",
    "ScoreResult",
    "UseCase",
    "builtin_registry",
    "create_profile",
    "deep_merge",
    "default_config",
    "find_best",
    "normalize_query",
    "rank",
    "recommend",
    "score",
]
