"""Repository acquisition for ``scan-repo``.

A scan target is either a local directory, used in place, or a git URL,
shallow-cloned into a temporary directory that is removed when the scan
finishes. ``GITHUB_TOKEN`` is injected into https clone URLs so private
GitHub repositories can be scanned.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import tempfile
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from depconfuse.errors import RepositoryError

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


def is_remote(target: str) -> bool:
    """Return True if ``target`` should be cloned rather than used in place."""
    return bool(_URL_RE.match(target)) or target.endswith(".git")


def authenticated_url(url: str, token: str | None) -> str:
    """Return ``url`` with ``token`` embedded for https clones."""
    if token and url.startswith("https://"):
        return url.replace("https://", f"https://{token}@", 1)
    return url


@contextmanager
def checkout(target: str, token: str | None = None) -> Iterator[Path]:
    """Yield a local directory containing the repository ``target``.

    Args:
        target: Local directory path or git clone URL.
        token: Access token for https clones. Defaults to ``GITHUB_TOKEN``.

    Yields:
        Path to the repository root.

    Raises:
        RepositoryError: If the local path is not a directory or the clone fails.
    """
    if not is_remote(target):
        path = Path(target).expanduser().resolve()
        if not path.is_dir():
            raise RepositoryError(f"Repository path is not a directory: {path}")
        yield path
        return

    if token is None:
        token = os.environ.get("GITHUB_TOKEN")

    workdir = Path(tempfile.mkdtemp(prefix=f"depconfuse-{uuid.uuid4().hex[:8]}-"))
    try:
        clone_path = workdir / "repo"
        _run(["git", "clone", "--depth", "1", "--", authenticated_url(target, token), str(clone_path)], token)
        logger.info("Cloned %s into %s", target, clone_path)
        yield clone_path
    finally:
        shutil.rmtree(workdir, ignore_errors=True)


def _run(cmd: list[str], token: str | None) -> None:
    """Run a git command, raising RepositoryError on failure."""
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as exc:
        raise RepositoryError(f"Cannot run git: {exc}") from exc
    if proc.returncode != 0:
        stderr = proc.stderr.strip()
        if token:
            stderr = stderr.replace(token, "***")
        raise RepositoryError(f"git clone failed (exit {proc.returncode}): {stderr}")
