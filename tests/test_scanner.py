"""Integration tests for depconfuse.scanner.

Runs the full pipeline against stub registries and fixture project trees
created in temporary directories. Tests cover:

- The end-to-end classification table
- Unreadable sources and parse fallbacks
- Memoization across many sources
- Idempotence with a frozen registry
- Declared-manifest checks
- scan_repository against a fixture repository (discovery, exclusions, notes)
- scan_file_list with missing files and working-directory-relative entries
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from depconfuse.config import ScanConfig
from depconfuse.models import Category, SourceInput
from depconfuse.registry import RegistryResolver
from depconfuse.scanner import DECLARED_MANIFEST_SOURCE, Scanner, scan_file_list, scan_repository
from tests.conftest import REGISTRY_URL, StubSession

TABLE_SOURCE = """\
const a = require("left-pad");
const b = require("@myorg/internal-lib");
const c = require("express");
const d = require("@myorg/express-fork");
const e = require("./local-helper");
"""

TABLE_REGISTRY = {
    "left-pad": 200,
    "express": 200,
    "@myorg/internal-lib": 404,
    "@myorg/express-fork": 404,
}


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def _scanner(session: StubSession, declared: set[str]) -> Scanner:
    resolver = RegistryResolver(base_url=REGISTRY_URL, session=session)
    return Scanner(declared, resolver)


def _config() -> ScanConfig:
    return ScanConfig(registry_url=REGISTRY_URL)


def _make_repo(root: Path) -> Path:
    _write_json(root / "package.json", {"name": "app", "dependencies": {"express": "^4.18.0"}})
    (root / "README.md").write_text("Setup:\n\n    npm install left-pad\n", encoding="utf-8")
    src = root / "src"
    src.mkdir()
    (src / "index.js").write_text(
        "import express from 'express';\nimport util from './util';\n", encoding="utf-8"
    )
    vendored = root / "node_modules" / "evil"
    vendored.mkdir(parents=True)
    (vendored / "README.md").write_text("npm i evil-pkg\n", encoding="utf-8")
    return root


class TestScannerPipeline:
    """End-to-end tests over in-memory sources."""

    def test_classification_table(self) -> None:
        session = StubSession(statuses=TABLE_REGISTRY)
        scanner = _scanner(session, {"express", "@myorg/express-fork"})
        findings = scanner.scan([SourceInput("src/app.js", TABLE_SOURCE, is_structured=True)])

        assert [(f.specifier, f.category) for f in findings] == [
            ("left-pad", Category.UNDECLARED_AND_PUBLIC),
            ("@myorg/internal-lib", Category.UNDECLARED_PRIVATE),
            ("express", Category.DECLARED_AND_PUBLIC),
        ]
        assert all(f.source == "src/app.js" for f in findings)
        assert "./local-helper" not in session.calls

    def test_install_line_without_manifest(self) -> None:
        session = StubSession(statuses={"left-pad": 200, "express": 200})
        findings = _scanner(session, set()).scan(
            [SourceInput("ci.yml", "run: npm install left-pad --save express")]
        )
        assert {f.specifier for f in findings} == {"left-pad", "express"}
        assert all(f.category is Category.UNDECLARED_AND_PUBLIC for f in findings)

    def test_unparsable_source_still_classified(self) -> None:
        session = StubSession(statuses={"foo-bar": 200})
        findings = _scanner(session, set()).scan(
            [SourceInput("broken.js", 'const x = require("foo-bar"); function (', is_structured=True)]
        )
        assert [(f.specifier, f.category) for f in findings] == [
            ("foo-bar", Category.UNDECLARED_AND_PUBLIC)
        ]

    def test_unreadable_source_short_circuits(self) -> None:
        session = StubSession(statuses={"left-pad": 200})
        findings = _scanner(session, set()).scan(
            [
                SourceInput("gone.js", None, error="No such file or directory"),
                SourceInput("ok.md", "npm i left-pad"),
            ]
        )
        assert [(f.source, f.category) for f in findings] == [
            ("ok.md", Category.UNDECLARED_AND_PUBLIC),
            ("gone.js", Category.UNREADABLE_SOURCE),
        ]
        assert findings[1].specifier is None

    def test_repeated_references_query_once(self) -> None:
        session = StubSession(statuses={"left-pad": 200})
        sources = [SourceInput(f"f{i}.js", "require('left-pad')", True) for i in range(25)]
        findings = _scanner(session, set()).scan(sources)
        assert len(findings) == 25
        assert session.count("left-pad") == 1
        assert [f.source for f in findings] == [f"f{i}.js" for i in range(25)]

    def test_registry_failure_is_conservative(self) -> None:
        session = StubSession(default=500)
        findings = _scanner(session, set()).scan([SourceInput("a.md", "`internal-tool`")])
        assert findings[0].category is Category.UNDECLARED_AND_PUBLIC
        assert findings[0].metadata["resolution"] == "assumed"

    def test_idempotent_with_frozen_registry(self) -> None:
        """Two runs against identical inputs give byte-identical output."""
        sources = [
            SourceInput("src/app.js", TABLE_SOURCE, is_structured=True),
            SourceInput("README.md", "npm i left-pad expresss `chalk`"),
            SourceInput("gone.sh", None, error="permission denied"),
        ]
        declared = {"express", "@myorg/express-fork"}

        def run() -> str:
            session = StubSession(statuses={**TABLE_REGISTRY, "chalk": 200, "expresss": 200})
            findings = _scanner(session, declared).scan(sources, check_declared=True)
            return json.dumps([f.to_dict() for f in findings])

        assert run() == run()

    def test_declared_manifest_check(self) -> None:
        session = StubSession(statuses={"express": 200})
        findings = _scanner(session, {"express", "@myorg/private"}).scan([], check_declared=True)
        assert [(f.source, f.specifier, f.category) for f in findings] == [
            (DECLARED_MANIFEST_SOURCE, "express", Category.DECLARED_AND_PUBLIC)
        ]
        assert sorted(session.calls) == ["@myorg/private", "express"]

    def test_near_miss_hint(self) -> None:
        session = StubSession(default=200)
        findings = _scanner(session, {"express"}).scan([SourceInput("a.md", "npm i expresss")])
        assert findings[0].metadata["similar_declared"] == "express"


class TestScanRepository:
    """Tests for scan_repository against a fixture tree."""

    def test_full_repository_scan(self, tmp_path: Path, stub_session: StubSession) -> None:
        root = _make_repo(tmp_path)
        report = scan_repository(root, _config(), session=stub_session)

        assert [(f.source, f.specifier, f.category) for f in report.findings] == [
            ("README.md", "left-pad", Category.UNDECLARED_AND_PUBLIC),
            (DECLARED_MANIFEST_SOURCE, "express", Category.DECLARED_AND_PUBLIC),
            ("src/index.js", "express", Category.DECLARED_AND_PUBLIC),
        ]
        assert report.sources_scanned == 2
        assert report.declared_count == 1
        assert report.names_resolved == 2
        assert report.exit_code == 1

    def test_vendored_directories_skipped(self, tmp_path: Path, stub_session: StubSession) -> None:
        root = _make_repo(tmp_path)
        scan_repository(root, _config(), session=stub_session)
        assert "evil-pkg" not in stub_session.calls

    def test_skip_declared_check(self, tmp_path: Path, stub_session: StubSession) -> None:
        root = _make_repo(tmp_path)
        config = ScanConfig(registry_url=REGISTRY_URL, check_declared=False)
        report = scan_repository(root, config, session=stub_session)
        assert DECLARED_MANIFEST_SOURCE not in {f.source for f in report.findings}

    def test_notes_mention_lockfile(self, tmp_path: Path, stub_session: StubSession) -> None:
        root = _make_repo(tmp_path)
        (root / "yarn.lock").write_text("", encoding="utf-8")
        report = scan_repository(root, _config(), session=stub_session)
        assert any("yarn.lock" in note for note in report.notes)

    def test_missing_manifest_maximises_findings(self, tmp_path: Path) -> None:
        (tmp_path / "index.js").write_text("require('express')\n", encoding="utf-8")
        session = StubSession(statuses={"express": 200})
        report = scan_repository(tmp_path, _config(), session=session)
        assert [(f.specifier, f.category) for f in report.findings] == [
            ("express", Category.UNDECLARED_AND_PUBLIC)
        ]
        assert report.declared_count == 0

    def test_clean_repository(self, tmp_path: Path) -> None:
        _write_json(tmp_path / "package.json", {"name": "app"})
        (tmp_path / "README.md").write_text("Nothing to install.\n", encoding="utf-8")
        report = scan_repository(tmp_path, _config(), session=StubSession())
        assert report.findings == []
        assert report.exit_code == 0


class TestScanFileList:
    """Tests for scan_file_list."""

    def test_listed_files_and_missing_entries(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        project = tmp_path / "project"
        _write_json(project / "package.json", {"dependencies": {"react": "^18"}})
        good = project / "app.jsx"
        good.write_text("import React from 'react';\nimport x from 'left-pad';\n", encoding="utf-8")
        listing = tmp_path / "files.txt"
        listing.write_text(f"{good}\n\n   project/missing.js  \n", encoding="utf-8")

        session = StubSession(statuses={"react": 200, "left-pad": 200})
        report = scan_file_list(listing, project, _config(), session=session)

        assert [(Path(f.source).name, f.specifier, f.category) for f in report.findings] == [
            ("app.jsx", "left-pad", Category.UNDECLARED_AND_PUBLIC),
            ("missing.js", None, Category.UNREADABLE_SOURCE),
            ("app.jsx", "react", Category.DECLARED_AND_PUBLIC),
        ]
        assert report.sources_scanned == 2

    def test_relative_entries_follow_working_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A changed-files list kept elsewhere is read from the repository root."""
        project = tmp_path / "project"
        _write_json(project / "package.json", {"dependencies": {}})
        (project / "app.js").write_text("require('left-pad');\n", encoding="utf-8")
        listing = tmp_path / "lists" / "changed.txt"
        listing.parent.mkdir()
        listing.write_text("app.js\n", encoding="utf-8")
        monkeypatch.chdir(project)

        session = StubSession(statuses={"left-pad": 200})
        report = scan_file_list(listing, project, _config(), session=session)

        assert [(f.specifier, f.category) for f in report.findings] == [
            ("left-pad", Category.UNDECLARED_AND_PUBLIC)
        ]
        assert Path(report.findings[0].source).resolve() == (project / "app.js").resolve()

    def test_missing_list_raises(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            scan_file_list(tmp_path / "nope.txt", tmp_path, _config(), session=StubSession())
