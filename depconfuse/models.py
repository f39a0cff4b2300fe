"""Data models for depconfuse scan findings and reports.

This module defines the core dataclasses and enumerations used throughout
the depconfuse package to represent extracted sources, registry lookups,
classified findings, and aggregated scan reports.

Classes:
    Severity: Display severity attached to each finding category
    Category: Finding categories, ordered from most to least severe
    Provenance: Where a registry existence answer came from
    ExistenceResult: Registry existence answer for a single package name
    SourceInput: A single source handed to the engine (content or read error)
    Finding: A single classified (source, specifier) pair
    ScanReport: Aggregated report containing all findings from a full scan
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class Severity(str, Enum):
    """Display severity levels for findings."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"

    @property
    def rich_style(self) -> str:
        """Return a Rich markup style string for this severity level."""
        styles: dict[Severity, str] = {
            Severity.HIGH: "bold red",
            Severity.MEDIUM: "yellow",
            Severity.LOW: "blue",
            Severity.INFO: "dim",
        }
        return styles.get(self, "white")


class Category(str, Enum):
    """Classification assigned to a (source, specifier) pair.

    - UNDECLARED_AND_PUBLIC: referenced but not declared, and the name exists
      on the public registry (dependency confusion risk)
    - UNREADABLE_SOURCE: the source could not be read at all
    - UNDECLARED_PRIVATE: referenced but not declared, and not on the registry
      (likely internal, or registry lag)
    - DECLARED_AND_PUBLIC: declared name that also resolves publicly
      (informational)

    Members are declared in severity order; ``rank`` follows that order and
    is what findings are sorted by.
    """

    UNDECLARED_AND_PUBLIC = "UNDECLARED_AND_PUBLIC"
    UNREADABLE_SOURCE = "UNREADABLE_SOURCE"
    UNDECLARED_PRIVATE = "UNDECLARED_PRIVATE"
    DECLARED_AND_PUBLIC = "DECLARED_AND_PUBLIC"

    @property
    def rank(self) -> int:
        """Return the sort rank of this category (0 is most severe)."""
        return list(Category).index(self)

    @property
    def severity(self) -> Severity:
        """Return the display severity for this category."""
        return _CATEGORY_SEVERITY[self]

    @property
    def reason(self) -> str:
        """Return a one-line human readable reason for this category."""
        return _CATEGORY_REASON[self]


_CATEGORY_SEVERITY: dict[Category, Severity] = {
    Category.UNDECLARED_AND_PUBLIC: Severity.HIGH,
    Category.UNREADABLE_SOURCE: Severity.MEDIUM,
    Category.UNDECLARED_PRIVATE: Severity.LOW,
    Category.DECLARED_AND_PUBLIC: Severity.INFO,
}

_CATEGORY_REASON: dict[Category, str] = {
    Category.UNDECLARED_AND_PUBLIC: (
        "external module not declared in package.json and exists on npm "
        "(possible confusion target)"
    ),
    Category.UNREADABLE_SOURCE: "cannot read file",
    Category.UNDECLARED_PRIVATE: "external module not declared in package.json",
    Category.DECLARED_AND_PUBLIC: (
        "declared in package.json and also exists publicly on npm (informational)"
    ),
}


class Provenance(str, Enum):
    """Origin of an existence answer.

    - LIVE: answered by a registry query issued for this call
    - CACHE: served from the per-scan memo
    - FALLBACK: the query failed or was ambiguous and the conservative
      policy (assume the name exists) was applied
    """

    LIVE = "live"
    CACHE = "cache"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ExistenceResult:
    """Registry existence answer for a single package name.

    Attributes:
        name: The package name that was looked up
        exists: Whether the name is treated as existing on the registry
        provenance: Whether the answer was live, cached, or a fallback
        status_code: HTTP status of the live query, if one completed
        error: Description of the failure when the fallback policy applied
    """

    name: str
    exists: bool
    provenance: Provenance
    status_code: int | None = None
    error: str | None = None

    @property
    def conservative(self) -> bool:
        """Return True if ``exists`` came from the conservative policy.

        Stays True for cached copies of a fallback answer.
        """
        return self.status_code not in (200, 404)


@dataclass(frozen=True)
class SourceInput:
    """A single source handed to the engine by the file access layer.

    Attributes:
        source_id: Path or synthetic identifier of the source
        content: Raw text, or None if the source could not be read
        is_structured: True when the content should be parsed as JavaScript
        error: Read error description when ``content`` is None
    """

    source_id: str
    content: str | None
    is_structured: bool = False
    error: str | None = None

    @property
    def readable(self) -> bool:
        return self.content is not None


@dataclass(frozen=True)
class Finding:
    """A single classified package reference.

    Attributes:
        source: Path or synthetic identifier where the specifier was found
        specifier: The package specifier, or None for UNREADABLE_SOURCE
        category: The classification of this reference
        metadata: Extra structured details (resolution, near-miss hints),
            held as a read-only copy of the mapping passed in
    """

    source: str
    specifier: str | None
    category: Category
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def severity(self) -> Severity:
        """Return the display severity derived from the category."""
        return self.category.severity

    @property
    def sort_key(self) -> tuple[int, str]:
        """Return the presentation sort key: category rank, then specifier."""
        return (self.category.rank, self.specifier or "")

    def to_dict(self) -> dict[str, Any]:
        """Serialize this finding to a JSON-serializable dictionary.

        Returns:
            A dict with all finding fields, suitable for JSON output.
        """
        return {
            "source": self.source,
            "specifier": self.specifier,
            "category": self.category.value,
            "severity": self.severity.value,
            "reason": self.category.reason,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Finding:
        """Deserialize a Finding from a dictionary.

        Args:
            data: A dict as produced by ``to_dict()``.

        Returns:
            A new Finding instance.

        Raises:
            KeyError: If required keys are missing from the dict.
            ValueError: If the category value is invalid.
        """
        return cls(
            source=data["source"],
            specifier=data.get("specifier"),
            category=Category(data["category"]),
            metadata=data.get("metadata", {}),
        )


@dataclass
class ScanReport:
    """Aggregated report containing all findings from a complete scan.

    Attributes:
        target: The repository, directory or file list that was scanned
        findings: Findings in presentation order
        sources_scanned: Number of sources handed to the engine
        declared_count: Number of names in the declared set
        names_resolved: Number of distinct names looked up on the registry
        notes: Informational notes about the project (lockfiles, private flag)
        scan_timestamp: ISO 8601 timestamp when the scan was initiated
    """

    target: str
    findings: list[Finding] = field(default_factory=list)
    sources_scanned: int = 0
    declared_count: int = 0
    names_resolved: int = 0
    notes: list[str] = field(default_factory=list)
    scan_timestamp: str = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc).isoformat()
    )

    @property
    def total_findings(self) -> int:
        return len(self.findings)

    @property
    def category_counts(self) -> dict[str, int]:
        """Return a mapping of category value to count, in severity order."""
        counts: dict[str, int] = {category.value: 0 for category in Category}
        for finding in self.findings:
            counts[finding.category.value] += 1
        return counts

    @property
    def has_confusion_risk(self) -> bool:
        """Return True if any finding is UNDECLARED_AND_PUBLIC."""
        return any(
            f.category is Category.UNDECLARED_AND_PUBLIC for f in self.findings
        )

    @property
    def exit_code(self) -> int:
        """Compute the process exit code for CI/CD integration.

        Returns:
            1 if any confusion-risk finding exists, 0 otherwise.
        """
        return 1 if self.has_confusion_risk else 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize this scan report to a JSON-serializable dictionary.

        Returns:
            A dict representation suitable for ``json.dumps()``.
        """
        return {
            "target": self.target,
            "scan_timestamp": self.scan_timestamp,
            "sources_scanned": self.sources_scanned,
            "declared_count": self.declared_count,
            "names_resolved": self.names_resolved,
            "total_findings": self.total_findings,
            "category_counts": self.category_counts,
            "exit_code": self.exit_code,
            "notes": list(self.notes),
            "findings": [f.to_dict() for f in self.findings],
        }
