from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .utils import decode_fragment, normalize_rule_name

ALL_RULES = "*"


@dataclass(frozen=True)
class Range:
    start: int  # character offsets into the document text
    end: int


@dataclass(frozen=True)
class Line:
    index: int  # 0-based
    range: Range
    in_code_block: bool = False
    in_front_matter: bool = False

    @property
    def number(self) -> int:
        return self.index + 1


@dataclass(frozen=True)
class CodeBlock:
    start_line: int  # 1-based, fence lines included
    end_line: int
    fence: str  # "```" / "~~~~" as written
    info: str = ""


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    line: int  # 1-based
    auto_anchor: str
    custom_anchor: str | None = None
    style: str = "atx"  # "atx" | "setext"


@dataclass(frozen=True)
class HtmlAnchor:
    id: str
    line: int
    range: Range
    tag: str


class AnchorOrigin(str, Enum):
    HEADING = "heading"
    CUSTOM = "custom"
    HTML = "html"


@dataclass(frozen=True)
class Anchor:
    value: str
    case_sensitive: bool
    origin: AnchorOrigin
    line: int


@dataclass(frozen=True)
class FootnoteRef:
    id: str
    line: int
    range: Range


@dataclass(frozen=True)
class FootnoteDef:
    id: str
    line: int
    range: Range


class LinkKind(str, Enum):
    EXTERNAL = "external"
    ABSOLUTE_PATH = "absolute-path"
    CROSS_FILE = "cross-file"
    AMBIGUOUS_LOCAL = "ambiguous-local"


@dataclass(frozen=True)
class Classification:
    kind: LinkKind
    path: str | None = None  # set for CROSS_FILE and ABSOLUTE_PATH


@dataclass(frozen=True)
class Link:
    target: str  # raw target; for reference links, the definition's target
    fragment: str | None  # text after the first "#", None when there is no "#"
    line: int
    column: int  # 1-based
    range: Range
    kind: LinkKind
    path: str | None = None
    text: str = ""
    style: str = "inline"  # "inline" | "reference" | "autolink"
    reference: str | None = None
    is_image: bool = False

    @property
    def is_local(self) -> bool:
        return self.kind is LinkKind.AMBIGUOUS_LOCAL


@dataclass(frozen=True)
class ReferenceDefinition:
    id: str  # case-folded label
    target: str
    title: str | None
    line: int


class DirectiveSource(str, Enum):
    DISABLE = "disable"
    ENABLE = "enable"
    DISABLE_LINE = "disable-line"
    DISABLE_NEXT_LINE = "disable-next-line"
    DISABLE_FILE = "disable-file"
    ENABLE_FILE = "enable-file"


@dataclass(frozen=True)
class InlineConfigRegion:
    rule: str  # normalized rule name or "*"
    start_line: int  # 1-based, inclusive
    end_line: int | None  # inclusive; None means rest of file
    source: DirectiveSource

    def covers(self, line: int) -> bool:
        if line < self.start_line:
            return False
        return self.end_line is None or line <= self.end_line


_LINE_SOURCES = (DirectiveSource.DISABLE_LINE, DirectiveSource.DISABLE_NEXT_LINE)


@dataclass(frozen=True)
class InlineConfig:
    """Materialized enable/disable regions for one document."""

    regions: tuple[InlineConfigRegion, ...] = ()
    _by_rule: dict[str, list[InlineConfigRegion]] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        for region in self.regions:
            self._by_rule.setdefault(region.rule, []).append(region)

    def _any(self, rule: str, line: int | None, *sources: DirectiveSource) -> bool:
        for region in self._by_rule.get(rule, ()):
            if region.source in sources and (line is None or region.covers(line)):
                return True
        return False

    def is_rule_disabled_at_line(self, rule: str, line: int) -> bool:
        """
        Decide whether ``rule`` is switched off at ``line`` (1-based).

        File-wide, single-line and spanning regions are unioned. While all
        rules are disabled, an explicit enable for ``rule`` wins.
        """
        rule = normalize_rule_name(rule)
        if self._any(ALL_RULES, None, DirectiveSource.DISABLE_FILE):
            if not self._any(rule, None, DirectiveSource.ENABLE_FILE):
                return True
        elif self._any(rule, None, DirectiveSource.DISABLE_FILE):
            return True

        if self._any(rule, line, *_LINE_SOURCES) or self._any(ALL_RULES, line, *_LINE_SOURCES):
            return True

        if self._any(ALL_RULES, line, DirectiveSource.DISABLE):
            return not self._any(rule, line, DirectiveSource.ENABLE)
        return self._any(rule, line, DirectiveSource.DISABLE)

    def file_disabled_rules(self) -> set[str]:
        return {
            r.rule for r in self.regions if r.source is DirectiveSource.DISABLE_FILE
        }


@dataclass(frozen=True)
class DocumentIndex:
    """Structural index of one Markdown document. Immutable once built."""

    text: str
    lines: tuple[Line, ...] = ()
    code_blocks: tuple[CodeBlock, ...] = ()
    headings: tuple[Heading, ...] = ()
    html_anchors: tuple[HtmlAnchor, ...] = ()
    anchors: tuple[Anchor, ...] = ()
    footnote_refs: tuple[FootnoteRef, ...] = ()
    footnote_defs: tuple[FootnoteDef, ...] = ()
    links: tuple[Link, ...] = ()
    reference_definitions: dict[str, ReferenceDefinition] = field(default_factory=dict)
    inline_config: InlineConfig = field(default_factory=InlineConfig)
    front_matter: dict[str, Any] = field(default_factory=dict)
    front_matter_range: Range | None = None
    front_matter_error: str | None = None
    file_config: dict[str, Any] = field(default_factory=dict)
    content_hash: str = ""
    _folded: frozenset[str] = field(init=False, repr=False, compare=False, default=frozenset())
    _exact: frozenset[str] = field(init=False, repr=False, compare=False, default=frozenset())

    def __post_init__(self) -> None:
        folded = {a.value.lower() for a in self.anchors if not a.case_sensitive}
        exact = {a.value for a in self.anchors if a.case_sensitive}
        object.__setattr__(self, "_folded", frozenset(folded))
        object.__setattr__(self, "_exact", frozenset(exact))

    def has_anchor(self, fragment: str) -> bool:
        """
        Check whether a fragment resolves in this document.

        Heading anchors match case-insensitively; custom and HTML anchors
        must match exactly. Percent-encoded fragments are decoded first.
        """
        fragment = decode_fragment(fragment)
        if fragment in self._exact:
            return True
        return fragment.lower() in self._folded

    def heading_by_anchor(self, fragment: str) -> Heading | None:
        fragment = decode_fragment(fragment)
        for h in self.headings:
            if h.custom_anchor == fragment:
                return h
            if h.auto_anchor and h.auto_anchor.lower() == fragment.lower():
                return h
        return None

    def is_rule_disabled_at_line(self, rule: str, line: int) -> bool:
        return self.inline_config.is_rule_disabled_at_line(rule, line)

    def cross_file_links(self) -> list[Link]:
        """Links to other files or absolute paths that carry a fragment."""
        return [
            link
            for link in self.links
            if link.kind in (LinkKind.CROSS_FILE, LinkKind.ABSOLUTE_PATH) and link.fragment
        ]

    def line_at(self, offset: int) -> int:
        """1-based line number containing a character offset."""
        lo, hi = 0, len(self.lines) - 1
        while lo < hi:
            mid = (lo + hi + 1) // 2
            if self.lines[mid].range.start <= offset:
                lo = mid
            else:
                hi = mid - 1
        return lo + 1

    def byte_offset(self, offset: int) -> int:
        """UTF-8 byte offset of a character offset into ``text``."""
        return len(self.text[:offset].encode("utf-8", errors="surrogatepass"))
