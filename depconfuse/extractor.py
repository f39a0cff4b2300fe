"""Package reference extraction from source code and free-form text.

This module harvests candidate package specifiers from the contents of a
single source. Two strategies are combined:

- Structured extraction: JavaScript sources are parsed with tree-sitter and
  the string operand of every static ``import``, single-argument
  ``require("x")`` call and dynamic ``import("x")`` is collected.
- Heuristic extraction: a fixed, ordered list of regular expression pattern
  families is run over the raw text. This catches references in READMEs, CI
  workflows, Dockerfiles, shell scripts, comments, and in sources that fail
  to parse.

Heuristic extraction always runs, including on structured sources. A parse
failure never aborts extraction; it only skips the structured pass.

Pattern families (in order):
    require, from, dynamic_import, bare_import, npm_install, yarn_add,
    pnpm_add, inline_code

Public API:
    PatternFamily: Dataclass describing a single heuristic pattern family
    PATTERN_FAMILIES: The default ordered pattern families
    ReferenceExtractor: Main class combining both strategies
    extract_references: Convenience function for one-off extraction
    is_structured_path: Whether a path should be parsed as JavaScript
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence

import tree_sitter_javascript as tsjs
from tree_sitter import Language, Node, Parser

from depconfuse.errors import ParseError
from depconfuse.specifiers import is_likely_package, strip_version

logger = logging.getLogger(__name__)

JS_LANGUAGE = Language(tsjs.language())

STRUCTURED_EXTENSIONS: frozenset[str] = frozenset(
    [".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs"]
)

# Quote characters stripped from install-command arguments
_TOKEN_QUOTES = "'\"`"

# Trailing prose punctuation stripped from install-command arguments
_TOKEN_TRAILING = ".,:;)"

# Subcommand words that can follow the matched command, never package names
_COMMAND_WORDS: frozenset[str] = frozenset(["install", "i", "add"])


# ---------------------------------------------------------------------------
# Heuristic pattern families
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatternFamily:
    """A single heuristic extraction pattern family.

    Attributes:
        name: Short identifier for the family
        pattern: Compiled regular expression; group 1 holds the captured text
        multi_token: When True, group 1 is the argument list of an install
            command and every whitespace-delimited token in it is a candidate
    """

    name: str
    pattern: re.Pattern[str]
    multi_token: bool = False


# Install argument lists end at the line end, at a shell operator or at the
# backtick closing an inline code span, so ``npm i a && npm test`` stops
# before ``npm test`` and "`npm install` to start" stops before "to".
_INSTALL_ARGS = r"([^\r\n;&|`]*)"

PATTERN_FAMILIES: tuple[PatternFamily, ...] = (
    PatternFamily(
        name="require",
        pattern=re.compile(r"\brequire\s*\(\s*['\"]([^'\"]+)['\"]\s*\)"),
    ),
    PatternFamily(
        name="from",
        pattern=re.compile(r"\bfrom\s+['\"]([^'\"]+)['\"]"),
    ),
    PatternFamily(
        name="dynamic_import",
        pattern=re.compile(r"\bimport\s*\(\s*['\"]([^'\"]+)['\"]\s*\)"),
    ),
    PatternFamily(
        name="bare_import",
        pattern=re.compile(r"\bimport\s+['\"]([^'\"]+)['\"]"),
    ),
    PatternFamily(
        name="npm_install",
        pattern=re.compile(r"\bnpm\s+(?:install|i|add)\b" + _INSTALL_ARGS),
        multi_token=True,
    ),
    PatternFamily(
        name="yarn_add",
        pattern=re.compile(r"\byarn\s+(?:global\s+)?add\b" + _INSTALL_ARGS),
        multi_token=True,
    ),
    PatternFamily(
        name="pnpm_add",
        pattern=re.compile(r"\bpnpm\s+(?:add|install|i)\b" + _INSTALL_ARGS),
        multi_token=True,
    ),
    PatternFamily(
        name="inline_code",
        pattern=re.compile(r"`(@?[A-Za-z0-9_\-./]+)`"),
    ),
)


def is_structured_path(path: str | Path) -> bool:
    """Return True if the file at ``path`` should be parsed as JavaScript."""
    return Path(path).suffix.lower() in STRUCTURED_EXTENSIONS


class ReferenceExtractor:
    """Extracts candidate package specifiers from a source.

    Attributes:
        families: Ordered heuristic pattern families applied to raw text

    Example::

        extractor = ReferenceExtractor()
        extractor.extract("npm install left-pad --save express")
        # {'left-pad', 'express'}
    """

    def __init__(self, families: Sequence[PatternFamily] | None = None) -> None:
        """Initialise the extractor.

        Args:
            families: Override the default pattern families. Additional
                ecosystems can be supported by passing extra families.
        """
        self.families: tuple[PatternFamily, ...] = (
            tuple(families) if families is not None else PATTERN_FAMILIES
        )

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def extract(self, content: str, is_structured: bool = False) -> set[str]:
        """Return the set of candidate specifiers found in ``content``."""
        return set(self.extract_ordered(content, is_structured))

    def extract_ordered(self, content: str, is_structured: bool = False) -> list[str]:
        """Return deduplicated candidate specifiers in extraction order.

        Structured results (when requested and the content parses) come
        first, followed by heuristic results in pattern family order.

        Args:
            content: Raw text of the source.
            is_structured: Whether to attempt a JavaScript parse first.

        Returns:
            List of unique, non-empty specifiers.
        """
        found: dict[str, None] = {}
        if not content:
            return []

        if is_structured:
            try:
                for spec in self.extract_structured(content):
                    if spec:
                        found.setdefault(spec, None)
            except ParseError as exc:
                logger.debug("Falling back to heuristic extraction: %s", exc)

        for spec in self.extract_heuristic(content):
            found.setdefault(spec, None)

        return list(found)

    def extract_structured(self, content: str) -> list[str]:
        """Collect import/require/dynamic-import string operands from a parse tree.

        Args:
            content: JavaScript source text.

        Returns:
            Specifiers in source order (may contain duplicates and local paths).

        Raises:
            ParseError: If the content does not parse as valid JavaScript.
        """
        tree = Parser(JS_LANGUAGE).parse(content.encode("utf-8", errors="replace"))
        if tree.root_node.has_error:
            raise ParseError("source contains syntax errors")

        specs: list[str] = []
        for node in _walk(tree.root_node):
            if node.type == "import_statement":
                source = _import_source(node)
                if source is not None:
                    specs.append(source)
            elif node.type == "call_expression":
                spec = _call_specifier(node)
                if spec is not None:
                    specs.append(spec)
        return specs

    def extract_heuristic(self, content: str) -> list[str]:
        """Scan raw text with every pattern family.

        Args:
            content: Arbitrary text.

        Returns:
            Candidate specifiers that pass the package shape check, in
            pattern family order (may contain duplicates).
        """
        specs: list[str] = []
        for family in self.families:
            for match in family.pattern.finditer(content):
                if family.multi_token:
                    specs.extend(_install_tokens(match.group(1)))
                    continue
                candidate = match.group(1)
                if is_likely_package(candidate):
                    specs.append(candidate)
        return specs


# ---------------------------------------------------------------------------
# Syntax tree helpers
# ---------------------------------------------------------------------------


def _walk(root: Node) -> Iterator[Node]:
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _string_value(node: Node | None) -> str | None:
    """Return the literal value of a plain string node (not a template)."""
    if node is None or node.type != "string":
        return None
    text = node.text.decode("utf-8", errors="replace") if node.text else ""
    return text[1:-1]


def _import_source(node: Node) -> str | None:
    source = node.child_by_field_name("source")
    if source is not None:
        return _string_value(source)
    # Older grammars nest the source under a from_clause
    for child in node.children:
        if child.type == "string":
            return _string_value(child)
        if child.type == "from_clause":
            for sub in child.children:
                if sub.type == "string":
                    return _string_value(sub)
    return None


def _call_specifier(node: Node) -> str | None:
    """Return the specifier of ``require("x")`` or ``import("x")``, if any."""
    callee = node.child_by_field_name("function")
    args = node.child_by_field_name("arguments")
    if callee is None or args is None:
        return None
    operands = [child for child in args.named_children if child.type != "comment"]

    if callee.type == "identifier" and callee.text == b"require":
        if len(operands) == 1:
            return _string_value(operands[0])
        return None
    if callee.type == "import" and operands:
        return _string_value(operands[0])
    return None


# ---------------------------------------------------------------------------
# Install command helpers
# ---------------------------------------------------------------------------


def _install_tokens(args: str) -> list[str]:
    """Return package tokens from an install command's argument list.

    Option flags (tokens starting with ``-``) and subcommand words are
    skipped; every remaining token that looks like a package, after quote,
    trailing punctuation and version stripping, is a candidate.
    """
    tokens: list[str] = []
    for raw in args.split():
        token = raw.strip(_TOKEN_QUOTES).rstrip(_TOKEN_TRAILING).strip(_TOKEN_QUOTES)
        if not token or token.startswith("-") or token in _COMMAND_WORDS:
            continue
        token = strip_version(token)
        if is_likely_package(token):
            tokens.append(token)
    return tokens


# ---------------------------------------------------------------------------
# Convenience function
# ---------------------------------------------------------------------------


def extract_references(content: str, is_structured: bool = False) -> set[str]:
    """Extract candidate package specifiers with the default pattern families.

    Args:
        content: Raw text of the source.
        is_structured: Whether to attempt a JavaScript parse first.

    Returns:
        Set of candidate specifiers.

    Example::

        >>> sorted(extract_references('const x = require("foo-bar"); {{', True))
        ['foo-bar']
    """
    return ReferenceExtractor().extract(content, is_structured)
