"""Unit tests for depconfuse.extractor.

Covers:
- Structured extraction of static imports, require() and dynamic import()
- Parse failures falling back to heuristic extraction
- Every heuristic pattern family, including multi-package install lines
- Option flags, shell operators, versions and quotes in install commands
- Custom pattern families
- Determinism and deduplication
"""

from __future__ import annotations

import re

import pytest

from depconfuse.errors import ParseError
from depconfuse.extractor import (
    PATTERN_FAMILIES,
    PatternFamily,
    ReferenceExtractor,
    extract_references,
    is_structured_path,
)

JS_SOURCE = """\
import React from "react";
import "./styles.css";
import { widget } from '@scope/pkg/sub';
const fs = require('fs');
import("lodash").then((m) => m.default);
require(`template-${name}`);
require("first", "second");
export default function App() { return <div />; }
"""

README = """\
Install with `npm i @acme/widgets` or:

    yarn add left-pad@1.3.0 "is-odd"
    pnpm add -D typescript && npm test

Then use `chalk` in your code. See `./docs/setup.md` and `https://example.com`.
"""


@pytest.fixture
def extractor() -> ReferenceExtractor:
    return ReferenceExtractor()


class TestStructuredExtraction:
    """Tests for the tree-sitter pass."""

    def test_collects_imports_requires_and_dynamic_imports(
        self, extractor: ReferenceExtractor
    ) -> None:
        """All three reference forms are collected with their literal values."""
        specs = extractor.extract_structured(JS_SOURCE)
        assert specs == ["react", "./styles.css", "@scope/pkg/sub", "fs", "lodash"]

    def test_template_literal_and_multi_argument_require_ignored(
        self, extractor: ReferenceExtractor
    ) -> None:
        specs = extractor.extract_structured(JS_SOURCE)
        assert "first" not in specs
        assert not any(s.startswith("template-") for s in specs)

    def test_non_require_calls_ignored(self, extractor: ReferenceExtractor) -> None:
        specs = extractor.extract_structured('load("not-a-package"); obj.require("nope");')
        assert specs == []

    def test_parse_error_raises(self, extractor: ReferenceExtractor) -> None:
        with pytest.raises(ParseError):
            extractor.extract_structured("const x = require('a'); function (")

    def test_structured_results_include_local_paths(
        self, extractor: ReferenceExtractor
    ) -> None:
        """Local filtering is left to the specifier classifier."""
        assert "./styles.css" in extractor.extract(JS_SOURCE, is_structured=True)

    def test_unparsable_source_falls_back_to_heuristics(
        self, extractor: ReferenceExtractor
    ) -> None:
        """Malformed source still yields references via the text scan."""
        content = 'const x = require("foo-bar"); function ( {{'
        assert extractor.extract(content, is_structured=True) == {"foo-bar"}

    def test_heuristics_also_run_on_structured_sources(
        self, extractor: ReferenceExtractor
    ) -> None:
        """References in comments are picked up by the heuristic pass."""
        content = '// run `npm install dotenv`\nconst x = require("react");\n'
        assert extractor.extract(content, is_structured=True) == {"react", "dotenv"}


class TestHeuristicExtraction:
    """Tests for the pattern family pass."""

    def test_install_line_with_option_flag(self, extractor: ReferenceExtractor) -> None:
        """Flags are skipped and the remaining packages are all collected."""
        assert extractor.extract("npm install left-pad --save express") == {
            "left-pad",
            "express",
        }

    def test_multi_package_short_form(self, extractor: ReferenceExtractor) -> None:
        assert extractor.extract("npm i a b c") == {"a", "b", "c"}

    def test_readme_mixture(self, extractor: ReferenceExtractor) -> None:
        assert extractor.extract(README) == {
            "@acme/widgets",
            "left-pad",
            "is-odd",
            "typescript",
            "chalk",
        }

    def test_shell_operator_ends_install_arguments(
        self, extractor: ReferenceExtractor
    ) -> None:
        assert extractor.extract("RUN npm install -g pm2 && npm ci") == {"pm2"}

    def test_second_command_on_same_line(self, extractor: ReferenceExtractor) -> None:
        assert extractor.extract("npm i alpha && npm i beta") == {"alpha", "beta"}

    def test_command_without_packages(self, extractor: ReferenceExtractor) -> None:
        assert extractor.extract("npm install\nnpm init -y\n") == set()

    def test_yarn_global_add(self, extractor: ReferenceExtractor) -> None:
        assert extractor.extract("yarn global add serve") == {"serve"}

    def test_inline_code_span_ends_install_arguments(
        self, extractor: ReferenceExtractor
    ) -> None:
        """Prose after a closing backtick is not part of the command."""
        text = "Run `npm install` to install the dependencies.\n"
        assert extractor.extract(text) == set()

    def test_inline_install_with_package_then_prose(
        self, extractor: ReferenceExtractor
    ) -> None:
        text = "Use `yarn add left-pad` before you start the server.\n"
        assert extractor.extract(text) == {"left-pad"}

    def test_command_words_are_not_candidates(self, extractor: ReferenceExtractor) -> None:
        """Repeated subcommand words never become package names."""
        assert extractor.extract("pnpm add add i install express") == {"express"}

    def test_trailing_punctuation_stripped(self, extractor: ReferenceExtractor) -> None:
        """Sentence punctuation attached to a token is dropped before the shape check."""
        assert extractor.extract("First npm i lodash, chalk; then run npm install express.") == {
            "lodash",
            "chalk",
            "express",
        }

    def test_require_and_from_patterns(self, extractor: ReferenceExtractor) -> None:
        text = "require( 'a-pkg' )\nimport b from \"b-pkg\"\nimport 'side-effect'\n"
        assert extractor.extract(text) == {"a-pkg", "b-pkg", "side-effect"}

    def test_dynamic_import_pattern(self, extractor: ReferenceExtractor) -> None:
        assert extractor.extract("await import('lazy-mod')") == {"lazy-mod"}

    def test_urls_and_paths_rejected(self, extractor: ReferenceExtractor) -> None:
        text = "require('./x')\nfrom '/abs'\n`https://example.com`\nimport('../y')\n"
        assert extractor.extract(text) == set()

    def test_deep_subpath_rejected_by_shape(self, extractor: ReferenceExtractor) -> None:
        assert extractor.extract_heuristic("require('@scope/pkg/sub')") == []

    def test_empty_content(self, extractor: ReferenceExtractor) -> None:
        assert extractor.extract("") == set()
        assert extractor.extract("", is_structured=True) == set()

    def test_duplicates_collapse(self, extractor: ReferenceExtractor) -> None:
        text = "require('dup')\nimport x from 'dup'\n`dup`\nnpm i dup\n"
        assert extractor.extract_ordered(text) == ["dup"]

    def test_extraction_is_deterministic(self, extractor: ReferenceExtractor) -> None:
        first = extractor.extract_ordered(README + JS_SOURCE, is_structured=True)
        second = extractor.extract_ordered(README + JS_SOURCE, is_structured=True)
        assert first == second


class TestPatternFamilies:
    """Tests for pattern family configuration."""

    def test_default_family_order(self) -> None:
        names = [family.name for family in PATTERN_FAMILIES]
        assert names == [
            "require",
            "from",
            "dynamic_import",
            "bare_import",
            "npm_install",
            "yarn_add",
            "pnpm_add",
            "inline_code",
        ]

    def test_custom_family_extends_extraction(self) -> None:
        """New ecosystems are added as data, without touching the engine."""
        bower = PatternFamily(
            name="bower_install",
            pattern=re.compile(r"\bbower\s+install\b([^\r\n;&|]*)"),
            multi_token=True,
        )
        extractor = ReferenceExtractor(families=[*PATTERN_FAMILIES, bower])
        assert extractor.extract("bower install jquery --save") == {"jquery"}

    def test_restricted_families(self) -> None:
        extractor = ReferenceExtractor(families=[PATTERN_FAMILIES[0]])
        assert extractor.extract("require('a')\nnpm i b") == {"a"}


class TestHelpers:
    """Tests for module-level helpers."""

    @pytest.mark.parametrize(
        "path", ["a.js", "b.JSX", "src/c.ts", "d.tsx", "e.mjs", "f.cjs"]
    )
    def test_structured_paths(self, path: str) -> None:
        assert is_structured_path(path) is True

    @pytest.mark.parametrize("path", ["README.md", "Dockerfile", "ci.yml", "run.sh"])
    def test_unstructured_paths(self, path: str) -> None:
        assert is_structured_path(path) is False

    def test_extract_references_convenience(self) -> None:
        assert extract_references('const x = require("foo-bar"); {{', True) == {"foo-bar"}
