"""Exception taxonomy for depconfuse.

Only ``RepositoryError`` is expected to escape the engine. The other errors
are raised where a failure happens and absorbed by the component that owns
the degradation policy:

- SourceReadError: recorded as an UNREADABLE_SOURCE finding
- ParseError: structured extraction is skipped, heuristic extraction still runs
- RegistryQueryError: the name is conservatively treated as existing
"""

from __future__ import annotations


class DepConfuseError(Exception):
    """Base class for all depconfuse errors."""


class SourceReadError(DepConfuseError):
    """A source file could not be read."""

    def __init__(self, source_id: str, reason: str) -> None:
        super().__init__(f"Cannot read {source_id}: {reason}")
        self.source_id = source_id
        self.reason = reason


class ParseError(DepConfuseError):
    """Structured source content could not be parsed."""


class RegistryQueryError(DepConfuseError):
    """A registry existence query failed or returned an ambiguous status."""

    def __init__(self, name: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(f"Registry query for '{name}' failed: {reason}")
        self.name = name
        self.reason = reason
        self.status_code = status_code


class RepositoryError(DepConfuseError):
    """The repository to scan could not be made available locally."""
