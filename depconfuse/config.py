"""Scan configuration for depconfuse.

``ScanConfig`` gathers the tunables of a scan: the registry endpoint, the
per-query timeout, the outbound query concurrency, the near-miss similarity
threshold and the discovery globs used for repository scans. Values can be
supplied directly, read from ``DEPCONFUSE_*`` environment variables with
``ScanConfig.from_env()``, and are validated on construction.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping

DEFAULT_REGISTRY_URL: str = "https://registry.npmjs.org"
DEFAULT_TIMEOUT: float = 5.0
DEFAULT_CONCURRENCY: int = 10
DEFAULT_NEAR_MISS_THRESHOLD: int = 85

ENV_REGISTRY_URL = "DEPCONFUSE_REGISTRY_URL"
ENV_TIMEOUT = "DEPCONFUSE_TIMEOUT"
ENV_CONCURRENCY = "DEPCONFUSE_CONCURRENCY"

# Documentation, CI and container files often carry install commands; the
# JavaScript globs pick up import/require references in source.
DEFAULT_SCAN_GLOBS: tuple[str, ...] = (
    "README.md",
    "**/*.md",
    "docs/**/*.md",
    ".github/workflows/**/*.yml",
    ".github/workflows/**/*.yaml",
    "Dockerfile",
    "**/Dockerfile*",
    "**/*.sh",
    "**/*.bash",
    "**/*.yml",
    "**/*.yaml",
    "**/*.js",
    "**/*.jsx",
    "**/*.ts",
    "**/*.tsx",
    "**/*.mjs",
    "**/*.cjs",
)


@dataclass
class ScanConfig:
    """Tunables for a single scan.

    Attributes:
        registry_url: Base URL of the public registry
        timeout: Per-query timeout in seconds
        concurrency: Maximum number of simultaneous registry queries
        near_miss_threshold: Similarity (0-100) at or above which an
            undeclared public specifier is linked to a declared name
        scan_globs: Glob patterns used to discover files in a repository
        check_declared: Also resolve every declared name on the registry
    """

    registry_url: str = DEFAULT_REGISTRY_URL
    timeout: float = DEFAULT_TIMEOUT
    concurrency: int = DEFAULT_CONCURRENCY
    near_miss_threshold: int = DEFAULT_NEAR_MISS_THRESHOLD
    scan_globs: tuple[str, ...] = field(default=DEFAULT_SCAN_GLOBS)
    check_declared: bool = True

    def __post_init__(self) -> None:
        if not self.registry_url:
            raise ValueError("registry_url must not be empty")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {self.concurrency}")
        if not (0 <= self.near_miss_threshold <= 100):
            raise ValueError(
                f"near_miss_threshold must be between 0 and 100, "
                f"got {self.near_miss_threshold}"
            )
        self.registry_url = self.registry_url.rstrip("/")

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: object,
    ) -> ScanConfig:
        """Build a config from ``DEPCONFUSE_*`` environment variables.

        Keyword overrides whose value is not None take precedence over the
        environment, which takes precedence over the defaults.

        Args:
            environ: Mapping to read instead of ``os.environ``.
            **overrides: Field values supplied by the caller (e.g. CLI options).

        Returns:
            A validated ScanConfig.

        Raises:
            ValueError: If an environment value cannot be converted or a
                resulting value is out of range.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        if env.get(ENV_REGISTRY_URL):
            values["registry_url"] = env[ENV_REGISTRY_URL]
        if env.get(ENV_TIMEOUT):
            values["timeout"] = _parse_env(env, ENV_TIMEOUT, float)
        if env.get(ENV_CONCURRENCY):
            values["concurrency"] = _parse_env(env, ENV_CONCURRENCY, int)

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)  # type: ignore[arg-type]


def _parse_env(env: Mapping[str, str], name: str, convert: type) -> object:
    raw = env[name]
    try:
        return convert(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from None
