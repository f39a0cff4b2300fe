"""Scan orchestration: sources in, ordered findings out.

This module is the central orchestrator for depconfuse. It wires together
the reference extractor, the registry resolver and the confusion
classifier, and exposes the two project-level scans used by the CLI.

Pipeline for each scan:

1. Extract candidate specifiers from every readable source
2. Keep external specifiers only
3. Resolve all distinct names against the registry concurrently
   (memoized, bounded by the configured concurrency)
4. Classify every (source, specifier) pair
5. Sort findings by category severity, then specifier

Unreadable sources produce a single UNREADABLE_SOURCE finding and are
otherwise skipped. Nothing in the pipeline aborts the scan.

Public API:
    Scanner: Engine over in-memory sources and a declared set
    scan_repository: Scan a repository directory
    scan_file_list: Scan the files listed in a newline-delimited list
    DECLARED_MANIFEST_SOURCE: Synthetic source id for declared-name checks
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable

from depconfuse.classifier import classify, order_findings, unreadable
from depconfuse.config import ScanConfig
from depconfuse.discovery import discover_files, read_file_list, read_source
from depconfuse.extractor import ReferenceExtractor
from depconfuse.manifest import DeclaredManifest, load_manifest
from depconfuse.models import Finding, ScanReport, SourceInput
from depconfuse.registry import RegistryResolver
from depconfuse.specifiers import is_external
from depconfuse.typosquat import DeclaredNameMatcher

logger = logging.getLogger(__name__)

DECLARED_MANIFEST_SOURCE = "declared-manifest"


class Scanner:
    """Runs the extraction, resolution and classification pipeline.

    A Scanner is bound to one declared set and one resolver, i.e. to one
    scan. Its resolver cache is the only shared mutable state.

    Attributes:
        declared: Declared dependency names (read-only)
        resolver: Registry resolver holding this scan's existence cache
        extractor: Reference extractor
        matcher: Near-miss matcher over the declared names

    Example::

        with RegistryResolver() as resolver:
            scanner = Scanner({"express"}, resolver)
            findings = scanner.scan([SourceInput("README.md", "npm i left-pad")])
    """

    def __init__(
        self,
        declared: Iterable[str],
        resolver: RegistryResolver,
        extractor: ReferenceExtractor | None = None,
        near_miss_threshold: int | None = None,
    ) -> None:
        self.declared: frozenset[str] = frozenset(declared)
        self.resolver = resolver
        self.extractor = extractor or ReferenceExtractor()
        if near_miss_threshold is None:
            self.matcher = DeclaredNameMatcher(self.declared)
        else:
            self.matcher = DeclaredNameMatcher(self.declared, threshold=near_miss_threshold)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def scan(
        self,
        sources: Iterable[SourceInput],
        check_declared: bool = False,
    ) -> list[Finding]:
        """Classify every package reference found in ``sources``.

        Args:
            sources: Sources in processing order.
            check_declared: Also resolve every declared name under the
                synthetic ``declared-manifest`` source.

        Returns:
            Findings in presentation order.
        """
        extracted: list[tuple[SourceInput, list[str]]] = []
        if check_declared:
            declared_source = SourceInput(DECLARED_MANIFEST_SOURCE, content="")
            extracted.append((declared_source, sorted(self.declared)))

        for source in sources:
            if not source.readable:
                extracted.append((source, []))
                continue
            specs = [
                spec
                for spec in self.extractor.extract_ordered(source.content or "", source.is_structured)
                if is_external(spec)
            ]
            logger.debug("%s: %d external reference(s)", source.source_id, len(specs))
            extracted.append((source, specs))

        names = [spec for _, specs in extracted for spec in specs]
        self.resolver.resolve_many(names)

        findings: list[Finding] = []
        for source, specs in extracted:
            if not source.readable:
                findings.append(unreadable(source.source_id, source.error))
                continue
            for spec in specs:
                finding = classify(source.source_id, spec, self.declared, self.resolver, self.matcher)
                if finding is not None:
                    findings.append(finding)

        return order_findings(findings)


# ---------------------------------------------------------------------------
# Project-level scans
# ---------------------------------------------------------------------------


def scan_repository(
    root: Path,
    config: ScanConfig | None = None,
    target: str | None = None,
    session: Any | None = None,
) -> ScanReport:
    """Scan a repository directory.

    Loads declared names from ``root/package.json``, discovers files with
    the configured globs and checks declared names on the registry when
    ``config.check_declared`` is set.

    Args:
        root: Repository root directory.
        config: Scan configuration. Defaults to ``ScanConfig()``.
        target: Label for the report; defaults to ``str(root)``.
        session: Optional HTTP session passed to the resolver.

    Returns:
        A ScanReport. Source ids are paths relative to ``root``.
    """
    config = config or ScanConfig()
    root = root.resolve()
    manifest = load_manifest(root)
    paths = discover_files(root, config.scan_globs)
    sources = [read_source(path, path.relative_to(root).as_posix()) for path in paths]
    return _run(target or str(root), manifest, sources, config, session)


def scan_file_list(
    list_path: Path,
    project_root: Path,
    config: ScanConfig | None = None,
    session: Any | None = None,
) -> ScanReport:
    """Scan the files listed in a newline-delimited list.

    Declared names come from ``project_root/package.json``. Declared names
    are not checked on their own here; only references found in the listed
    files are classified.

    Raises:
        OSError: If the list file cannot be read.
    """
    config = config or ScanConfig()
    manifest = load_manifest(project_root)
    sources = [read_source(path) for path in read_file_list(list_path)]
    return _run(str(list_path), manifest, sources, config, session, check_declared=False)


def _run(
    target: str,
    manifest: DeclaredManifest,
    sources: list[SourceInput],
    config: ScanConfig,
    session: Any | None,
    check_declared: bool | None = None,
) -> ScanReport:
    if check_declared is None:
        check_declared = config.check_declared
    logger.info(
        "Scanning %d source(s) with %d declared name(s)", len(sources), len(manifest.names)
    )
    with RegistryResolver(
        base_url=config.registry_url,
        timeout=config.timeout,
        concurrency=config.concurrency,
        session=session,
    ) as resolver:
        scanner = Scanner(
            manifest.names,
            resolver,
            near_miss_threshold=config.near_miss_threshold,
        )
        findings = scanner.scan(sources, check_declared=check_declared)
        logger.info("Registry activity: %s", resolver.stats.to_dict())
        return ScanReport(
            target=target,
            findings=findings,
            sources_scanned=len(sources),
            declared_count=len(manifest.names),
            names_resolved=resolver.resolved_count,
            notes=manifest.notes,
        )
