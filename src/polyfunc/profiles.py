"""Language profiles and weighted requirement scoring.

A profile rates one implementation language on five characteristics
(1-10 scale) and lists the use cases it is good at. A requirement query
picks the characteristics it cares about, weights them, and optionally
names a use case. Profiles are scored by the weighted average of the
terms the query actually asks about.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

CHARACTERISTICS: tuple[str, ...] = (
    "performance",
    "memory",
    "startupTime",
    "ecosystem",
    "concurrency",
)

DEFAULT_RATING = 5

# Below any attainable score, so an empty registry still resolves.
NO_MATCH_SCORE = -1


@dataclass
class UseCase:
    """A use case a language is suited for."""

    name: str
    score: float  # 1-10

    def to_dict(self) -> dict:
        return {"name": self.name, "score": self.score}


@dataclass
class Library:
    """An informational note about a notable library."""

    purpose: str
    maturity: float  # 1-10

    def to_dict(self) -> dict:
        return {"purpose": self.purpose, "maturity": self.maturity}


@dataclass(init=False)
class LanguageProfile:
    """Suitability ratings for one implementation language."""

    name: str
    characteristics: dict[str, float]
    use_cases: list[UseCase]
    libraries: dict[str, Library]

    def __init__(self, name: str, characteristics: Mapping[str, float] | None = None):
        self.name = name
        self.characteristics = {dim: DEFAULT_RATING for dim in CHARACTERISTICS}
        if characteristics:
            self.characteristics.update(characteristics)
        self.use_cases = []
        self.libraries = {}

    def add_use_case(self, name: str, score: float) -> LanguageProfile:
        """Append a use case. Returns the profile for chaining."""
        self.use_cases.append(UseCase(name=name, score=score))
        return self

    def add_library(self, name: str, purpose: str, maturity: float) -> LanguageProfile:
        """Record a library, replacing any earlier entry of the same name."""
        self.libraries[name] = Library(purpose=purpose, maturity=maturity)
        return self

    def use_case(self, name: str) -> UseCase | None:
        """Return the first use case with the given name, or None."""
        for uc in self.use_cases:
            if uc.name == name:
                return uc
        return None

    def top_use_cases(self, n: int = 3) -> list[UseCase]:
        """Return the n highest-scoring use cases (stable for equal scores)."""
        return sorted(self.use_cases, key=lambda uc: uc.score, reverse=True)[:n]

    def matches(self, query: Mapping[str, Any]) -> float:
        """Score how well this profile fits a requirement query."""
        return score(self, query)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dict."""
        return {
            "name": self.name,
            "characteristics": dict(self.characteristics),
            "useCases": [uc.to_dict() for uc in self.use_cases],
            "libraries": {name: lib.to_dict() for name, lib in self.libraries.items()},
        }


def create_profile(
    name: str, characteristics: Mapping[str, float] | None = None
) -> LanguageProfile:
    """Create a profile with every characteristic defaulting to 5."""
    return LanguageProfile(name, characteristics)


def _weight_of(term: Any) -> float | None:
    """Extract a numeric weight from a ``{"weight": w}`` query term."""
    if not isinstance(term, Mapping):
        return None
    weight = term.get("weight")
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        return None
    return weight


def score(profile: LanguageProfile, query: Mapping[str, Any]) -> float:
    """Weighted average of the profile's ratings over the query's terms.

    Dimensions the query does not mention, and a use case the profile
    does not list, add nothing to either the numerator or the
    denominator. Malformed terms are skipped the same way.

    Returns:
        The weighted average, or 0 when no term carried any weight.
    """
    if not isinstance(query, Mapping):
        return 0

    total = 0.0
    total_weight = 0.0

    for dim in CHARACTERISTICS:
        if dim not in query:
            continue
        weight = _weight_of(query[dim])
        if weight is None:
            continue
        total += profile.characteristics[dim] * weight
        total_weight += weight

    use_case_name = query.get("useCase")
    if use_case_name:
        matched = profile.use_case(use_case_name)
        if matched is not None:
            weight = query.get("useCaseWeight") or 1
            if isinstance(weight, bool) or not isinstance(weight, (int, float)):
                weight = 1
            total += matched.score * weight
            total_weight += weight

    return total / total_weight if total_weight > 0 else 0


@dataclass
class ScoreResult:
    """The best-matching profile for a query."""

    language: str | None
    score: float
    profile: LanguageProfile | None = None

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dict."""
        return {
            "language": self.language,
            "score": round(self.score, 3),
            "profile": self.profile.to_dict() if self.profile else None,
        }


class ProfileRegistry:
    """Ordered collection of language profiles, keyed by name.

    Iteration follows registration order, which is also the tie-break
    order when ranking.
    """

    def __init__(self, profiles: list[LanguageProfile] | None = None):
        self._profiles: dict[str, LanguageProfile] = {}
        for profile in profiles or []:
            self.register(profile)

    def register(self, profile: LanguageProfile) -> LanguageProfile:
        """Add a profile to the registry."""
        self._profiles[profile.name] = profile
        return profile

    def get(self, name: str) -> LanguageProfile:
        """Get a registered profile by name.

        Raises:
            KeyError: If the profile name is not registered.
        """
        if name not in self._profiles:
            available = ", ".join(self._profiles.keys())
            raise KeyError(f"Unknown language: {name!r}. Available: {available}")
        return self._profiles[name]

    def names(self) -> list[str]:
        return list(self._profiles.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._profiles

    def __iter__(self) -> Iterator[LanguageProfile]:
        return iter(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)


def find_best(registry: ProfileRegistry, query: Mapping[str, Any]) -> ScoreResult:
    """Return the highest-scoring profile for a query.

    Ties keep the profile registered first. An empty registry yields
    ``ScoreResult(None, NO_MATCH_SCORE, None)``.
    """
    best = ScoreResult(language=None, score=NO_MATCH_SCORE, profile=None)
    for profile in registry:
        value = score(profile, query)
        if value > best.score:
            best = ScoreResult(language=profile.name, score=value, profile=profile)
    return best


def rank(registry: ProfileRegistry, query: Mapping[str, Any]) -> list[ScoreResult]:
    """Score every profile, best first. Ties stay in registration order."""
    results = [
        ScoreResult(language=profile.name, score=score(profile, query), profile=profile)
        for profile in registry
    ]
    results.sort(key=lambda r: r.score, reverse=True)
    return results


def normalize_query(analysis: Any) -> dict:
    """Flatten a requirement analysis into a ``find_best`` query.

    The analysis oracle nests dimension weights under ``"requirements"``;
    those entries are lifted to the top level. Top-level dimension keys
    take precedence over nested ones.
    """
    if not isinstance(analysis, Mapping):
        return {}

    query: dict = {}
    nested = analysis.get("requirements")
    if isinstance(nested, Mapping):
        for dim in CHARACTERISTICS:
            if dim in nested:
                query[dim] = nested[dim]
    for dim in CHARACTERISTICS:
        if dim in analysis:
            query[dim] = analysis[dim]

    if analysis.get("useCase"):
        query["useCase"] = analysis["useCase"]
    if "useCaseWeight" in analysis:
        query["useCaseWeight"] = analysis["useCaseWeight"]
    return query


# --- Built-in profiles ---

def _builtin_profiles() -> list[LanguageProfile]:
    javascript = (
        LanguageProfile("javascript", {
            "performance": 6, "memory": 5, "startupTime": 7, "ecosystem": 9, "concurrency": 6,
        })
        .add_use_case("web", 9)
        .add_use_case("api", 8)
        .add_use_case("scripting", 9)
        .add_use_case("data", 6)
        .add_library("express", "web server", 9)
        .add_library("node-fetch", "http client", 8)
    )

    python = (
        LanguageProfile("python", {
            "performance": 5, "memory": 6, "startupTime": 6, "ecosystem": 9, "concurrency": 5,
        })
        .add_use_case("data", 9)
        .add_use_case("ml", 10)
        .add_use_case("scripting", 9)
        .add_use_case("web", 6)
        .add_library("flask", "web server", 8)
        .add_library("pandas", "data processing", 9)
    )

    go = (
        LanguageProfile("go", {
            "performance": 8, "memory": 8, "startupTime": 9, "ecosystem": 7, "concurrency": 10,
        })
        .add_use_case("performance", 9)
        .add_use_case("concurrency", 10)
        .add_use_case("api", 8)
        .add_use_case("system", 8)
        .add_library("gin", "web framework", 8)
        .add_library("gorm", "orm", 7)
    )

    rust = (
        LanguageProfile("rust", {
            "performance": 10, "memory": 9, "startupTime": 7, "ecosystem": 6, "concurrency": 9,
        })
        .add_use_case("system", 10)
        .add_use_case("performance", 10)
        .add_use_case("concurrency", 9)
        .add_use_case("embedded", 9)
        .add_library("actix-web", "web server", 8)
        .add_library("serde", "serialization", 9)
    )

    return [javascript, python, go, rust]


def builtin_registry() -> ProfileRegistry:
    """Return a fresh registry of the built-in language profiles."""
    return ProfileRegistry(_builtin_profiles())
