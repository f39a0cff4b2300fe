"""Specifier classification helpers.

A specifier is the package reference exactly as it appeared in a source,
e.g. ``lodash``, ``@scope/name`` or ``@scope/name/sub``. Two checks live
here:

- ``is_external``: whether a specifier can be resolved against the public
  registry at all (relative paths, absolute paths and URLs cannot)
- ``is_likely_package``: whether a token scraped from text has the shape of
  a package name, used to filter heuristic extraction candidates
"""

from __future__ import annotations

import re

# Prefixes that mark a specifier as a path or URL rather than a package name
LOCAL_PREFIXES: tuple[str, ...] = (".", "/", "http://", "https://")

# Optional scope marker, a name, then at most one subpath segment
_PACKAGE_SHAPE_RE = re.compile(r"@?[\w\-.]+(?:/[\w\-.]+)?", re.ASCII)


def is_external(specifier: str) -> bool:
    """Return True if the specifier refers to a registry package.

    Args:
        specifier: The specifier as extracted from a source.

    Returns:
        False for empty specifiers and for anything starting with ``.``,
        ``/``, ``http://`` or ``https://``; True otherwise.
    """
    if not specifier:
        return False
    return not specifier.startswith(LOCAL_PREFIXES)


def is_likely_package(token: str) -> bool:
    """Return True if a scraped token looks like a package specifier.

    Args:
        token: A candidate token from heuristic text extraction.

    Returns:
        True when the token is external and matches the package name shape.
    """
    if not token or not isinstance(token, str):
        return False
    if not is_external(token):
        return False
    return _PACKAGE_SHAPE_RE.fullmatch(token) is not None


def strip_version(token: str) -> str:
    """Remove a trailing ``@version`` from an install-command token.

    ``left-pad@1.3.0`` becomes ``left-pad`` and ``@scope/name@^2`` becomes
    ``@scope/name``. A leading ``@`` (the scope marker) is never treated as a
    version separator.
    """
    at = token.rfind("@")
    if at > 0:
        return token[:at]
    return token
