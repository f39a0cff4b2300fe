"""Near-miss matching of undeclared references against declared dependencies.

An undeclared specifier that resolves publicly is most dangerous when it is
a slip of a declared name: ``expresss`` for ``express``, or ``utils`` for
the internal ``@myorg/utils``. This module uses rapidfuzz to find the
declared name a specifier most closely resembles, so the finding can point
at it.

Scores combine three rapidfuzz metrics with fixed weights:

- 50 % Levenshtein ratio  (general edit distance)
- 30 % WRatio             (prefix-sensitive weighted ratio)
- 20 % Token sort ratio   (handles reordering in compound names)

Public API:
    NearMiss: Dataclass representing a single match
    DeclaredNameMatcher: Matcher built once per declared set
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable

from rapidfuzz import fuzz, process, utils as rf_utils

from depconfuse.config import DEFAULT_NEAR_MISS_THRESHOLD

# Scope prefix pattern: @scope/name
_SCOPED_RE = re.compile(r"^@([^/]+)/(.+)$")


@dataclass(frozen=True)
class NearMiss:
    """A declared name that closely resembles a referenced specifier.

    Attributes:
        specifier: The referenced (undeclared) specifier
        declared: The declared name it resembles
        score: Similarity score in the range 0-100
    """

    specifier: str
    declared: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "similar_declared": self.declared,
            "similarity": round(self.score, 2),
        }


class DeclaredNameMatcher:
    """Finds the declared dependency an undeclared specifier most resembles.

    Attributes:
        threshold: Minimum similarity score (0-100) to report a match

    Example::

        matcher = DeclaredNameMatcher({"express", "@myorg/utils"})
        matcher.find("expresss").declared   # 'express'
        matcher.find("utils").declared      # '@myorg/utils'
    """

    def __init__(
        self,
        declared: Iterable[str],
        threshold: int = DEFAULT_NEAR_MISS_THRESHOLD,
    ) -> None:
        if not (0 <= threshold <= 100):
            raise ValueError(f"threshold must be between 0 and 100, got {threshold}")
        self.threshold: int = threshold
        # Normalised form -> original declared names sharing it
        self._by_normalised: dict[str, list[str]] = {}
        for name in sorted(set(declared)):
            normalised = _normalise_name(name)
            if normalised:
                self._by_normalised.setdefault(normalised, []).append(name)
        self._choices: list[str] = sorted(self._by_normalised)

    def find(self, specifier: str) -> NearMiss | None:
        """Return the closest declared name, or None below the threshold.

        A specifier identical to a declared name never matches.

        Args:
            specifier: A referenced package specifier.

        Returns:
            A NearMiss or None.
        """
        normalised = _normalise_name(specifier)
        if not normalised or not self._choices:
            return None

        # Exact hit after normalisation: differs only by scope or case
        exact = [n for n in self._by_normalised.get(normalised, []) if n != specifier]
        if exact:
            return NearMiss(specifier=specifier, declared=exact[0], score=100.0)

        best = process.extractOne(
            normalised,
            self._choices,
            scorer=fuzz.ratio,
            score_cutoff=max(self.threshold - 15, 0),
            processor=rf_utils.default_process,
        )
        if best is None:
            return None

        best_name: str = best[0]
        final_score = max(best[1], _composite_score(normalised, best_name))
        if final_score < self.threshold:
            return None

        candidates = [n for n in self._by_normalised[best_name] if n != specifier]
        if not candidates:
            return None
        return NearMiss(specifier=specifier, declared=candidates[0], score=final_score)


def _normalise_name(name: str) -> str:
    """Lower-case a name and strip its scope (``@scope/name`` -> ``name``)."""
    name = name.strip().lower()
    m = _SCOPED_RE.match(name)
    if m:
        return m.group(2)
    return name


def _composite_score(name_a: str, name_b: str) -> float:
    ratio = fuzz.ratio(name_a, name_b)
    weighted = fuzz.WRatio(name_a, name_b)
    token_sort = fuzz.token_sort_ratio(name_a, name_b)
    return 0.50 * ratio + 0.30 * weighted + 0.20 * token_sort
