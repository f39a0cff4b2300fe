"""Confusion classification of extracted package references.

Combines declared-dependency membership with registry existence:

==============  ================  ==========================
declared?       on registry?      result
==============  ================  ==========================
no              yes               UNDECLARED_AND_PUBLIC
no              no                UNDECLARED_PRIVATE
yes             yes               DECLARED_AND_PUBLIC
yes             no                no finding
==============  ================  ==========================

The registry is queried in every case, so declared names that collide with
public packages are surfaced for visibility.

Public API:
    classify: Classify a single (source, specifier) pair
    unreadable: Build the finding for a source that could not be read
    order_findings: Sort findings into presentation order
"""

from __future__ import annotations

from typing import AbstractSet, Iterable, Protocol

from depconfuse.models import Category, ExistenceResult, Finding
from depconfuse.specifiers import is_external
from depconfuse.typosquat import DeclaredNameMatcher


class Resolver(Protocol):
    def resolve(self, name: str) -> ExistenceResult: ...


def classify(
    source: str,
    specifier: str,
    declared: AbstractSet[str],
    resolver: Resolver,
    matcher: DeclaredNameMatcher | None = None,
) -> Finding | None:
    """Classify a single package reference.

    Args:
        source: Where the specifier was found.
        specifier: An external, non-empty specifier.
        declared: The project's declared dependency names.
        resolver: Registry resolver for this scan.
        matcher: Optional near-miss matcher; when given, confusion-risk
            findings record the declared name the specifier resembles.

    Returns:
        A Finding, or None for a declared name absent from the registry.

    Raises:
        ValueError: If the specifier is empty or not external.
    """
    if not is_external(specifier):
        raise ValueError(f"specifier must be external and non-empty, got {specifier!r}")

    result = resolver.resolve(specifier)
    metadata: dict[str, object] = {
        "resolution": "assumed" if result.conservative else "registry",
    }
    if result.status_code is not None:
        metadata["status_code"] = result.status_code

    if specifier in declared:
        if not result.exists:
            return None
        category = Category.DECLARED_AND_PUBLIC
    elif result.exists:
        category = Category.UNDECLARED_AND_PUBLIC
        if matcher is not None:
            near_miss = matcher.find(specifier)
            if near_miss is not None:
                metadata.update(near_miss.to_dict())
    else:
        category = Category.UNDECLARED_PRIVATE

    return Finding(source=source, specifier=specifier, category=category, metadata=metadata)


def unreadable(source: str, reason: str | None = None) -> Finding:
    """Return the UNREADABLE_SOURCE finding for ``source``."""
    metadata: dict[str, object] = {}
    if reason:
        metadata["error"] = reason
    return Finding(
        source=source,
        specifier=None,
        category=Category.UNREADABLE_SOURCE,
        metadata=metadata,
    )


def order_findings(findings: Iterable[Finding]) -> list[Finding]:
    """Sort findings by category severity, then specifier.

    The sort is stable, so findings that tie keep their accumulation
    (source processing) order.
    """
    return sorted(findings, key=lambda f: f.sort_key)
