"""File discovery and fail-soft reading of scan sources.

This module is the file access layer in front of the engine. It finds the
files a repository scan should look at, reads newline-delimited file lists
for ``scan-files``, and turns each path into a ``SourceInput``. Read
failures become a ``SourceInput`` without content instead of an exception,
so one unreadable file never halts a scan.

Public API:
    discover_files: Glob a project tree, skipping vendored/build directories
    read_file_list: Read a newline-delimited list of paths
    read_source: Read one path into a SourceInput
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Iterable

from depconfuse.errors import SourceReadError
from depconfuse.extractor import is_structured_path
from depconfuse.models import SourceInput

logger = logging.getLogger(__name__)

EXCLUDE_DIRS: frozenset[str] = frozenset(
    [
        ".git",
        "node_modules",
        "bower_components",
        "vendor",
        "dist",
        "build",
        "coverage",
        ".next",
        ".nuxt",
        ".svelte-kit",
        ".cache",
        ".venv",
        "venv",
        "__pycache__",
    ]
)


def discover_files(
    root: Path,
    patterns: Iterable[str],
    exclude_dirs: frozenset[str] = EXCLUDE_DIRS,
) -> list[Path]:
    """Find files under ``root`` matching any of the glob patterns.

    The tree is walked once; excluded directories are pruned before they
    are entered.

    Args:
        root: Directory to search.
        patterns: Glob patterns relative to ``root`` (``**`` supported).
        exclude_dirs: Directory names whose contents are never returned.

    Returns:
        Sorted, deduplicated list of absolute file paths.
    """
    root = root.resolve()
    matchers = [_glob_to_regex(pattern) for pattern in patterns]
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in exclude_dirs]
        base = Path(dirpath)
        for name in filenames:
            path = base / name
            rel = path.relative_to(root).as_posix()
            if any(m.fullmatch(rel) for m in matchers) and path.is_file():
                found.append(path)
    logger.info("Discovered %d candidate file(s) under %s", len(found), root)
    return sorted(found)


def _glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a ``pathlib``-style glob into a regex over posix paths.

    ``**/`` matches zero or more directories, ``*`` and ``?`` never cross
    a ``/``.
    """
    out: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:[^/]+/)*")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(out))


def read_file_list(list_path: Path, base: Path | None = None) -> list[Path]:
    """Read a newline-delimited list of file paths.

    Blank lines are ignored and surrounding whitespace is trimmed. Relative
    entries are resolved against ``base``, the current working directory by
    default, so lists produced by ``git diff --name-only`` work when the
    scan runs from the repository root.

    Raises:
        OSError: If the list file itself cannot be read.
    """
    if base is None:
        base = Path.cwd()
    paths: list[Path] = []
    for line in list_path.read_text(encoding="utf-8").splitlines():
        entry = line.strip()
        if not entry:
            continue
        path = Path(entry)
        paths.append(path if path.is_absolute() else base / path)
    return paths


def read_source(path: Path, source_id: str | None = None) -> SourceInput:
    """Read a file into a SourceInput.

    Args:
        path: File to read.
        source_id: Identifier to report; defaults to ``str(path)``.

    Returns:
        A SourceInput. When the file cannot be read, ``content`` is None and
        ``error`` describes the failure.
    """
    sid = source_id or str(path)
    try:
        content = _read_text(path, sid)
    except SourceReadError as exc:
        logger.warning("%s", exc)
        return SourceInput(source_id=sid, content=None, error=exc.reason)
    return SourceInput(source_id=sid, content=content, is_structured=is_structured_path(path))


def _read_text(path: Path, source_id: str) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise SourceReadError(source_id, exc.strerror or str(exc)) from exc
