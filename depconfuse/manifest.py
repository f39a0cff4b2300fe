"""Declared dependency loading from a project's package.json.

The declared set is the union of the names found under every dependency
category of the manifest. A missing or malformed manifest is not an error:
it yields an empty declared set, which maximises findings rather than
suppressing them.

Besides names, the loader records a few facts used as report notes: whether
the package is marked ``private`` and which lockfiles sit next to it.

Public API:
    DeclaredManifest: Loaded manifest facts
    load_manifest: Load a project's package.json
    extract_dependency_names: Collect dependency names from parsed JSON
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Dependency key names in package.json that contain package names
DEPENDENCY_KEYS: tuple[str, ...] = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
    "bundledDependencies",
    "bundleDependencies",
)

LOCKFILES: tuple[str, ...] = ("package-lock.json", "npm-shrinkwrap.json", "yarn.lock", "pnpm-lock.yaml")


@dataclass(frozen=True)
class DeclaredManifest:
    """Facts loaded from a project's package.json.

    Attributes:
        path: The manifest path that was looked for
        found: Whether a readable, valid manifest was loaded
        names: Declared dependency names
        private: Whether the manifest sets ``"private": true``
        lockfiles: Lockfile names present next to the manifest
    """

    path: Path
    found: bool = False
    names: frozenset[str] = field(default_factory=frozenset)
    private: bool = False
    lockfiles: tuple[str, ...] = ()

    @property
    def notes(self) -> list[str]:
        """Return informational notes about the project."""
        notes: list[str] = []
        if not self.found:
            notes.append(
                f"No usable package.json at {self.path}; every reference is treated as undeclared."
            )
        if self.private:
            notes.append(
                "Project marked as private in package.json; internal package "
                "names may still be published publicly by someone else."
            )
        if self.lockfiles:
            notes.append(
                f"{', '.join(self.lockfiles)} detected; nested dependencies are "
                f"not expanded by this scan."
            )
        else:
            notes.append("No lockfile detected; nested dependencies cannot be enumerated reliably.")
        return notes


def load_manifest(project_root: Path) -> DeclaredManifest:
    """Load declared dependencies from ``project_root/package.json``.

    Args:
        project_root: Directory containing the manifest.

    Returns:
        A DeclaredManifest. On absence or parse failure ``names`` is empty.
    """
    path = project_root / "package.json"
    lockfiles = tuple(name for name in LOCKFILES if (project_root / name).is_file())

    if not path.is_file():
        logger.info("No package.json found at %s", path)
        return DeclaredManifest(path=path, lockfiles=lockfiles)

    try:
        data: Any = json.loads(path.read_text(encoding="utf-8", errors="replace"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable manifest %s: %s", path, exc)
        return DeclaredManifest(path=path, lockfiles=lockfiles)

    if not isinstance(data, dict):
        logger.warning("Ignoring manifest %s: top-level value is not an object", path)
        return DeclaredManifest(path=path, lockfiles=lockfiles)

    return DeclaredManifest(
        path=path,
        found=True,
        names=frozenset(extract_dependency_names(data)),
        private=data.get("private") is True,
        lockfiles=lockfiles,
    )


def extract_dependency_names(data: dict[str, Any]) -> list[str]:
    """Extract all dependency package names from parsed package.json data.

    Args:
        data: The parsed manifest object.

    Returns:
        Deduplicated list of package name strings, in manifest order.
    """
    names: list[str] = []
    seen: set[str] = set()

    for key in DEPENDENCY_KEYS:
        deps: Any = data.get(key)
        if isinstance(deps, dict):
            candidates: list[Any] = list(deps.keys())
        elif isinstance(deps, list):
            # bundledDependencies can be a list of strings
            candidates = deps
        else:
            continue
        for name in candidates:
            if isinstance(name, str) and name and name not in seen:
                names.append(name)
                seen.add(name)

    return names
