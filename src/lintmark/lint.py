"""Lint rules and the two-phase lint pipeline."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Protocol, runtime_checkable

from .adapters.document_parser import DocumentParser
from .core.anchors import Dialect
from .core.model import DocumentIndex, Range
from .core.utils import content_hash, normalize_rule_name
from .workspace import CrossFileResolver, WorkspaceIndex, path_key

logger = logging.getLogger(__name__)


@dataclass
class Finding:
    severity: str  # "info" | "warn" | "error"
    message: str
    range: Range | None = None
    rule: str = ""
    line: int = 0
    column: int = 0
    end_column: int = 0
    path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "rule": self.rule,
            "severity": self.severity,
            "message": self.message,
            "line": self.line,
            "column": self.column,
            "end_column": self.end_column,
            "range": {"start": self.range.start, "end": self.range.end} if self.range else None,
        }

    def format(self) -> str:
        return f"{self.path}:{self.line}:{self.column}: {self.rule} [{self.severity}] {self.message}"


class LintRule(Protocol):
    id: str
    alias: str

    def check(self, doc: DocumentIndex) -> list[Finding]:
        pass


@runtime_checkable
class WorkspaceRule(Protocol):
    """A rule that also needs the complete workspace index."""

    id: str

    def cross_file_check(
        self, path: str, doc: DocumentIndex, workspace: WorkspaceIndex
    ) -> list[Finding]:
        pass


def _column(doc: DocumentIndex, line: int, offset: int) -> int:
    if 0 < line <= len(doc.lines):
        return offset - doc.lines[line - 1].range.start + 1
    return 1


class LinkFragmentsRule:
    """Link fragments must name an anchor that exists."""

    id = "MD051"
    alias = "link-fragments"

    def check(self, doc: DocumentIndex) -> list[Finding]:
        out: list[Finding] = []
        for link in doc.links:
            # extensionless targets ("somefile#x") are treated as in-page links
            if not link.is_local or not link.fragment:
                continue
            if doc.has_anchor(link.fragment):
                continue
            out.append(
                Finding(
                    "warn",
                    f"Link fragment '#{link.fragment}' does not exist",
                    link.range,
                    rule=self.id,
                    line=link.line,
                    column=link.column,
                    end_column=link.column + link.range.end - link.range.start,
                )
            )
        return out

    def cross_file_check(
        self, path: str, doc: DocumentIndex, workspace: WorkspaceIndex
    ) -> list[Finding]:
        out: list[Finding] = []
        for miss in CrossFileResolver(workspace).unresolved(path, doc):
            link = miss.link
            out.append(
                Finding(
                    "warn",
                    f"Link fragment '#{link.fragment}' does not exist in '{link.path}'",
                    link.range,
                    rule=self.id,
                    line=link.line,
                    column=link.column,
                    end_column=link.column + link.range.end - link.range.start,
                    path=path,
                )
            )
        return out


class DuplicateFootnotesRule:
    """
    Footnote identifiers should be unique.

    Duplicate definitions are errors and checked by default. Duplicate
    references are legal Markdown, so they are only reported when asked for.
    A ``configure-file`` comment may override either option per document.
    """

    id = "MD063"
    alias = "duplicate-footnotes"

    def __init__(self, check_definitions: bool = True, check_references: bool = False):
        self.check_definitions = check_definitions
        self.check_references = check_references

    def _options(self, doc: DocumentIndex) -> tuple[bool, bool]:
        override = doc.file_config.get(self.id)
        if not isinstance(override, dict):
            return self.check_definitions, self.check_references
        return (
            bool(override.get("check_definitions", self.check_definitions)),
            bool(override.get("check_references", self.check_references)),
        )

    def check(self, doc: DocumentIndex) -> list[Finding]:
        check_definitions, check_references = self._options(doc)
        out: list[Finding] = []

        if check_definitions:
            first_seen: dict[str, int] = {}
            for fn in doc.footnote_defs:
                if fn.id not in first_seen:
                    first_seen[fn.id] = fn.line
                    continue
                column = _column(doc, fn.line, fn.range.start)
                out.append(
                    Finding(
                        "error",
                        f"Duplicate footnote definition '[^{fn.id}]' "
                        f"(first defined on line {first_seen[fn.id]})",
                        fn.range,
                        rule=self.id,
                        line=fn.line,
                        column=column,
                        end_column=column + fn.range.end - fn.range.start,
                    )
                )

        if check_references:
            seen: set[str] = set()
            for ref in doc.footnote_refs:
                if ref.id not in seen:
                    seen.add(ref.id)
                    continue
                column = _column(doc, ref.line, ref.range.start)
                out.append(
                    Finding(
                        "warn",
                        f"Duplicate footnote reference '[^{ref.id}]'",
                        ref.range,
                        rule=self.id,
                        line=ref.line,
                        column=column,
                        end_column=column + ref.range.end - ref.range.start,
                    )
                )
        return out


def default_rules(options: Mapping[str, Mapping[str, Any]] | None = None) -> list[LintRule]:
    """All built-in rules, configured from per-rule option tables."""
    options = options or {}
    footnotes = options.get(DuplicateFootnotesRule.id, {})
    return [
        LinkFragmentsRule(),
        DuplicateFootnotesRule(
            check_definitions=footnotes.get("check_definitions", True),
            check_references=footnotes.get("check_references", False),
        ),
    ]


def select_rules(rules: Iterable[LintRule], disabled: Iterable[str]) -> list[LintRule]:
    """Drop rules named in ``disabled`` (ids or aliases)."""
    off = {normalize_rule_name(name) for name in disabled}
    return [r for r in rules if r.id not in off]


def _sorted(findings: list[Finding]) -> list[Finding]:
    return sorted(findings, key=lambda f: (f.line, f.column, f.rule, f.message))


def _visible(doc: DocumentIndex, findings: Iterable[Finding]) -> list[Finding]:
    return [f for f in findings if not doc.is_rule_disabled_at_line(f.rule, f.line)]


def lint_document(
    doc: DocumentIndex, rules: Iterable[LintRule], path: str | None = None
) -> list[Finding]:
    """
    Run per-document rules and drop findings switched off by inline comments.

    Args:
        doc: Indexed document
        rules: Rules to run
        path: Stamped on each finding when given

    Returns:
        Findings ordered by position
    """
    findings: list[Finding] = []
    for rule in rules:
        findings.extend(rule.check(doc))
    findings = _visible(doc, findings)
    if path is not None:
        for f in findings:
            f.path = path
    return _sorted(findings)


class Linter:
    """
    Lint a set of documents with cross-file fragment checking.

    Phase one indexes every document (in parallel) into the workspace index.
    Phase two runs the rules; cross-file checks only start once every
    document is in the index.
    """

    def __init__(
        self,
        rules: list[LintRule] | None = None,
        dialect: Dialect | str = Dialect.GITHUB,
        cross_file: bool = True,
        max_workers: int | None = None,
        workspace: WorkspaceIndex | None = None,
    ):
        self.rules = rules if rules is not None else default_rules()
        self.dialect = Dialect.parse(dialect)
        self.cross_file = cross_file
        self.max_workers = max_workers or None
        self.workspace = workspace if workspace is not None else WorkspaceIndex(self.dialect)
        self.parser = DocumentParser(self.dialect)

    def _index_one(self, key: str, text: str) -> DocumentIndex | None:
        if not self.workspace.is_file_stale(key, content_hash(text)):
            return None
        return self.parser.parse(text)

    def index(self, sources: Mapping[str, str]) -> list[str]:
        """
        Index ``sources`` (path -> text) into the workspace.

        Unchanged documents already in the workspace are not parsed again.

        Returns:
            Workspace keys of the given sources, in input order
        """
        started = time.perf_counter()
        keys = [path_key(p) for p in sources]
        texts = list(sources.values())
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            docs = list(pool.map(self._index_one, keys, texts))
        parsed = 0
        # single writer: insertions happen on this thread in input order
        for key, doc in zip(keys, docs):
            if doc is not None:
                self.workspace.insert_file(key, doc)
                parsed += 1
        logger.debug(
            "Indexed %d/%d documents in %.1fms",
            parsed, len(keys), (time.perf_counter() - started) * 1000,
        )
        return keys

    def check(self, keys: Iterable[str]) -> dict[str, list[Finding]]:
        """Run every rule over already indexed documents."""
        results: dict[str, list[Finding]] = {}
        for key in keys:
            doc = self.workspace.get_file(key)
            if doc is None:
                continue
            findings = lint_document(doc, self.rules, key)
            if self.cross_file:
                extra: list[Finding] = []
                for rule in self.rules:
                    if isinstance(rule, WorkspaceRule):
                        extra.extend(rule.cross_file_check(key, doc, self.workspace))
                findings = _sorted(findings + _visible(doc, extra))
            results[key] = findings
        return results

    def lint(self, sources: Mapping[str, str]) -> dict[str, list[Finding]]:
        keys = self.index(sources)
        return self.check(keys)


def lint_workspace(
    sources: Mapping[str, str],
    rules: list[LintRule] | None = None,
    dialect: Dialect | str = Dialect.GITHUB,
    cross_file: bool = True,
    max_workers: int | None = None,
) -> dict[str, list[Finding]]:
    """Index every document, then lint all of them. Keys are normalized paths."""
    linter = Linter(rules, dialect, cross_file=cross_file, max_workers=max_workers)
    return linter.lint(sources)
