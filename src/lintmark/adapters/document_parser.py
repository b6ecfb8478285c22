"""Single-pass structural indexer for Markdown documents.

The parser walks the document once, line by line, threading an explicit
``_ScanState`` accumulator through the loop. Two O(n) helper passes run
before it: line segmentation and a backward sweep that records, for every
line, the longest fence closer still to come (so an opening fence that is
never closed can be recognised as plain text without rescanning).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from ..core.anchors import Dialect, generate
from ..core.classify import classify, split_fragment
from ..core.model import (
    Anchor,
    AnchorOrigin,
    CodeBlock,
    DocumentIndex,
    FootnoteDef,
    FootnoteRef,
    Heading,
    HtmlAnchor,
    Line,
    Link,
    Range,
    ReferenceDefinition,
)
from ..core.utils import content_hash
from .front_matter import TOML_DELIMITER, YAML_CLOSERS, YAML_DELIMITER, FrontMatterCodec
from .inline_config import InlineConfigBuilder, parse_directive

logger = logging.getLogger(__name__)

_LINE = re.compile(r"[^\r\n]*(?:\r\n|\r|\n)|[^\r\n]+")
_BLOCKQUOTE = re.compile(r"^(?:[ \t]{0,3}>[ \t]?)+")
_FENCE = re.compile(r"^[ \t]*(`{3,}|~{3,})(.*)$")
_ATX = re.compile(r"^ {0,3}(#{1,6})(?=[ \t]|$)[ \t]*")
_ATX_CLOSE = re.compile(r"(?:^|[ \t]+)#+[ \t]*$")
_SETEXT = re.compile(r"^ {0,3}(=+|-+)[ \t]*$")
_LIST_ITEM = re.compile(r"^[ \t]*(?:[-+*]|\d{1,9}[.)])(?:[ \t]|$)")
_THEMATIC = re.compile(r"^ {0,3}(?:(?:\*[ \t]*){3,}|(?:_[ \t]*){3,}|(?:-[ \t]*){3,})$")
_HTML_BLOCK = re.compile(r"^ {0,3}<[A-Za-z/!?]")

_ATTR_TOKEN = (
    r"(?:#[^\s{}#.\"'=]+|\.[^\s{}#.\"'=]+"
    r"|[\w-]+=(?:\"(?:[^\"\\]|\\.)*\"|'[^']*'|[^\s{}\"']+))"
)
_ATTR_BLOCK = rf"\{{:?[ \t]*({_ATTR_TOKEN}(?:[ \t]+{_ATTR_TOKEN})*)[ \t]*\}}"
_ATTR_SUFFIX = re.compile(rf"[ \t]*{_ATTR_BLOCK}[ \t]*$")
_ATTR_LINE = re.compile(rf"^[ \t]{{0,3}}{_ATTR_BLOCK}[ \t]*$")
_ATTR_TOKENS = re.compile(_ATTR_TOKEN)

_REF_DEF = re.compile(
    r"^ {0,3}\[((?:[^\[\]\\]|\\.)+)\]:[ \t]*(<[^<>]*>|\S+)"
    r"(?:[ \t]+(\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*'|\((?:[^()\\]|\\.)*\)))?[ \t]*$"
)
_FOOTNOTE_DEF = re.compile(r"^[ \t]*\[\^([^\]\s]+)\]:")
_FOOTNOTE_REF = re.compile(r"\[\^([^\]\s]+)\]")

_LINK_TEXT = r"(?:[^\[\]\\\n]|\\.|\[(?:[^\[\]\\\n]|\\.)*\])*"
_DEST = r"(?:<[^<>\n]*>|(?:[^\s()\\]|\\.|\((?:[^\s()\\]|\\.)*\))*)"
_TITLE = r"(?:\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*'|\((?:[^()\\]|\\.)*\))"
_INLINE_LINK = re.compile(
    rf"(?<!\\)(!?)\[({_LINK_TEXT})\]\([ \t]*({_DEST})(?:[ \t]+{_TITLE})?[ \t]*\)"
)
_FULL_REF = re.compile(rf"(?<!\\)(!?)\[({_LINK_TEXT})\]\[((?:[^\[\]\\\n]|\\.)*)\]")
_SHORTCUT_REF = re.compile(r"(?<![\\\]])(!?)\[((?:[^\[\]\\\n]|\\.)+)\](?![\[(:])")
_AUTOLINK = re.compile(r"<([A-Za-z][A-Za-z0-9+.\-]{1,31}:[^\s<>]*)>")
_EMAIL_AUTOLINK = re.compile(r"<([^\s@<>\\]+@[^\s@<>\\]+\.[^\s@<>\\]+)>")
_BARE_URL = re.compile(r"(?<![\w/<(\[])(?:https?://|ftp://|www\.)[^\s<>]*[^\s<>.,:;!?'\")\]*_~]")

_HTML_TAG = re.compile(
    r"<([A-Za-z][A-Za-z0-9-]*)"
    r"((?:\s+[^\s=<>/\"']+(?:\s*=\s*(?:\"[^\"]*\"|'[^']*'|[^\s\"'=<>`]+))?)*)\s*/?>"
)
_HTML_ATTR = re.compile(r"([^\s=<>/\"']+)(?:\s*=\s*(?:\"([^\"]*)\"|'([^']*)'|([^\s\"'=<>`]+)))?")
_BACKTICKS = re.compile(r"`+")

_TEMPLATE_MARKERS = ("{{", "{%")
_BOM = "\ufeff"


def normalize_label(label: str) -> str:
    """Reference labels match case-insensitively with collapsed whitespace."""
    return " ".join(label.split()).lower()


def extract_custom_id(attr_body: str) -> str | None:
    """Return the first ``#id`` token of an attribute list body."""
    for tok in _ATTR_TOKENS.finditer(attr_body):
        if tok.group().startswith("#"):
            return tok.group()[1:]
    return None


def _code_span_ranges(s: str) -> list[tuple[int, int]]:
    """Column ranges of inline code spans; unmatched backtick runs are literal."""
    runs = [(m.start(), m.end()) for m in _BACKTICKS.finditer(s)]
    if len(runs) < 2:
        return []
    nxt: list[int | None] = [None] * len(runs)
    last: dict[int, int] = {}
    for i in range(len(runs) - 1, -1, -1):
        size = runs[i][1] - runs[i][0]
        nxt[i] = last.get(size)
        last[size] = i
    out = []
    i = 0
    while i < len(runs):
        j = nxt[i]
        if j is None:
            i += 1
            continue
        out.append((runs[i][0], runs[j][1]))
        i = j + 1
    return out


def _blank_spans(s: str, spans: list[tuple[int, int]]) -> str:
    """Replace each (start, end) span with spaces, keeping columns stable."""
    if not spans:
        return s
    pieces = []
    pos = 0
    for start, end in sorted(spans):
        if end <= pos:
            continue
        start = max(start, pos)
        pieces.append(s[pos:start])
        pieces.append(" " * (end - start))
        pos = end
    pieces.append(s[pos:])
    return "".join(pieces)


def _indent_width(s: str) -> int:
    expanded = s.expandtabs(4)
    return len(expanded) - len(expanded.lstrip(" "))


@dataclass
class _HeadingDraft:
    level: int
    text: str
    anchor_source: str
    line: int
    style: str
    custom: str | None = None


@dataclass
class _PendingRef:
    label: str
    text: str
    line: int
    column: int
    range: Range
    is_image: bool


@dataclass
class _ScanState:
    """Mutable accumulator threaded through the single forward pass."""

    lines: list[Line] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)
    headings: list[_HeadingDraft] = field(default_factory=list)
    html_anchors: list[HtmlAnchor] = field(default_factory=list)
    footnote_refs: list[FootnoteRef] = field(default_factory=list)
    footnote_defs: list[FootnoteDef] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    pending_refs: list[_PendingRef] = field(default_factory=list)
    ref_defs: dict[str, ReferenceDefinition] = field(default_factory=dict)
    inline: InlineConfigBuilder = field(default_factory=InlineConfigBuilder)

    # open fence: (marker char, length, start line, marker text, info)
    fence: tuple[str, int, int, str, str] | None = None
    indented_code: bool = False
    indented_start: int = 0
    indented_last: int = 0
    in_comment: bool = False
    comment_line: int = 0
    comment_parts: list[str] = field(default_factory=list)
    paragraph: list[str] = field(default_factory=list)
    paragraph_line: int = 0
    paragraph_quoted: bool = False
    attr_target: int | None = None  # heading draft that may take a next-line ID
    prev_blank: bool = True
    in_list: bool = False


class DocumentParser:
    """
    Build a DocumentIndex from raw Markdown text.

    Parsing never fails: constructs that cannot be interpreted (fences that
    never close, broken attribute lists, stray ``<!--``) are treated as plain
    text.
    """

    def __init__(self, dialect: Dialect | str = Dialect.GITHUB):
        self.dialect = Dialect.parse(dialect)
        self.front_matter = FrontMatterCodec()

    def parse(self, text: str | bytes) -> DocumentIndex:
        if isinstance(text, bytes):
            text = text.decode("utf-8", errors="replace")

        raw_lines = [(m.start(), m.end(), m.group().rstrip("\r\n")) for m in _LINE.finditer(text)]
        bodies = [_BLOCKQUOTE.sub("", content) for _, _, content in raw_lines]
        fm_end, fm_meta, fm_error = self._front_matter(raw_lines)
        closers = self._closer_lengths(bodies)
        last_comment_close = text.rfind("-->")

        st = _ScanState()
        for i, (start, end, content) in enumerate(raw_lines):
            span = Range(start, end)
            if i < fm_end:
                st.lines.append(Line(i, span, in_front_matter=True))
                continue
            if self._scan_fence(st, i, bodies[i], closers):
                st.lines.append(Line(i, span, in_code_block=True))
                st.paragraph = []
                st.attr_target = None
                st.prev_blank = False
                continue
            in_code = self._scan_line(st, i + 1, start, content, bodies[i], last_comment_close)
            st.lines.append(Line(i, span, in_code_block=in_code))

        if st.indented_code:
            st.code_blocks.append(CodeBlock(st.indented_start, st.indented_last, ""))
        if st.in_comment:
            self._finish_comment(st)
        st.code_blocks.sort(key=lambda b: b.start_line)

        self._resolve_references(st)
        headings, anchors = self._finalize_headings(st)
        for a in st.html_anchors:
            anchors.append(Anchor(a.id, True, AnchorOrigin.HTML, a.line))
        anchors.sort(key=lambda a: a.line)

        fm_range = Range(0, raw_lines[fm_end - 1][1]) if fm_end else None
        return DocumentIndex(
            text=text,
            lines=tuple(st.lines),
            code_blocks=tuple(st.code_blocks),
            headings=tuple(headings),
            html_anchors=tuple(st.html_anchors),
            anchors=tuple(anchors),
            footnote_refs=tuple(st.footnote_refs),
            footnote_defs=tuple(st.footnote_defs),
            links=tuple(st.links),
            reference_definitions=st.ref_defs,
            inline_config=st.inline.build(),
            front_matter=fm_meta,
            front_matter_range=fm_range,
            front_matter_error=fm_error,
            file_config=st.inline.file_config,
            content_hash=content_hash(text),
        )

    # -- pre-passes -------------------------------------------------------

    def _front_matter(self, raw_lines: list[tuple[int, int, str]]) -> tuple[int, dict, str | None]:
        """Return (number of front matter lines, metadata, error)."""
        if not raw_lines:
            return 0, {}, None
        opener = raw_lines[0][2].lstrip(_BOM).rstrip()
        if opener not in (YAML_DELIMITER, TOML_DELIMITER):
            return 0, {}, None
        closers = YAML_CLOSERS if opener == YAML_DELIMITER else (TOML_DELIMITER,)
        for j in range(1, len(raw_lines)):
            if raw_lines[j][2].rstrip() in closers:
                block = "\n".join(c for _, _, c in raw_lines[1:j])
                meta, error = self.front_matter.decode(block, opener)
                return j + 1, meta, error
        return 0, {}, None

    @staticmethod
    def _closer_lengths(bodies: list[str]) -> dict[str, list[int]]:
        """For each fence char, the longest closing fence strictly after each line."""
        n = len(bodies)
        out = {"`": [0] * n, "~": [0] * n}
        best = {"`": 0, "~": 0}
        for i in range(n - 1, -1, -1):
            out["`"][i] = best["`"]
            out["~"][i] = best["~"]
            m = _FENCE.match(bodies[i])
            if m and not m.group(2).strip():
                ch = m.group(1)[0]
                best[ch] = max(best[ch], len(m.group(1)))
        return out

    # -- per line ---------------------------------------------------------

    def _scan_fence(self, st: _ScanState, i: int, body: str, closers: dict[str, list[int]]) -> bool:
        """Update fence state; True when the line belongs to a fenced block."""
        m = _FENCE.match(body)
        if st.fence is not None:
            ch, size, start_line, marker, info = st.fence
            if m and m.group(1)[0] == ch and len(m.group(1)) >= size and not m.group(2).strip():
                st.code_blocks.append(CodeBlock(start_line, i + 1, marker, info))
                st.fence = None
            return True
        if not m or st.in_comment:
            return False
        if st.indented_code and _indent_width(body) >= 4:
            return False
        marker, info = m.group(1), m.group(2).strip()
        ch = marker[0]
        if ch == "`" and "`" in info:
            return False
        if closers[ch][i] < len(marker):
            logger.debug("Unterminated code fence on line %d treated as text", i + 1)
            return False
        if st.indented_code:
            self._close_indented(st)
        st.fence = (ch, len(marker), i + 1, marker, info)
        return True

    def _close_indented(self, st: _ScanState) -> None:
        st.code_blocks.append(CodeBlock(st.indented_start, st.indented_last, ""))
        st.indented_code = False

    def _scan_indented(self, st: _ScanState, number: int, content: str) -> bool:
        """Track indented code blocks; True when the line is indented code."""
        if not content.strip():
            return False
        indent = _indent_width(content)
        if st.indented_code:
            if indent >= 4:
                st.indented_last = number
                return True
            self._close_indented(st)
            return False
        if indent >= 4 and st.prev_blank and not st.paragraph and not st.in_list:
            st.indented_code = True
            st.indented_start = st.indented_last = number
            return True
        return False

    def _scan_line(
        self,
        st: _ScanState,
        number: int,
        offset: int,
        content: str,
        body: str,
        last_comment_close: int,
    ) -> bool:
        """Index one line outside fenced code. Returns True for indented code."""
        if not st.in_comment and self._scan_indented(st, number, content):
            st.paragraph = []
            st.attr_target = None
            st.prev_blank = False
            return True

        starts_in_comment = st.in_comment
        masked = self._mask_comments(st, number, offset, content, last_comment_close)
        attr_target, st.attr_target = st.attr_target, None

        if not content.strip():
            st.paragraph = []
            st.prev_blank = True
            return False

        if starts_in_comment:
            self._scan_inline(st, number, offset, content, masked)
            st.paragraph = []
            st.prev_blank = False
            return False

        attr_line = _ATTR_LINE.match(body)
        atx = _ATX.match(body)
        setext = _SETEXT.match(body)
        list_item = _LIST_ITEM.match(body)
        quoted = len(body) != len(content)
        is_paragraph = False

        if list_item:
            st.in_list = True
        elif st.prev_blank and _indent_width(content) == 0:
            st.in_list = False

        if attr_line:
            if attr_target is not None and st.headings[attr_target].custom is None:
                st.headings[attr_target].custom = extract_custom_id(attr_line.group(1))
        elif atx:
            st.headings.append(self._atx_heading(atx, body, number))
            st.attr_target = len(st.headings) - 1
            st.in_list = False
            self._scan_inline(st, number, offset, content, masked)
        elif setext and st.paragraph and st.paragraph_quoted == quoted:
            level = 1 if setext.group(1)[0] == "=" else 2
            st.headings.append(self._setext_heading(st, level))
            st.attr_target = len(st.headings) - 1
        else:
            ref = _REF_DEF.match(body)
            if ref and not ref.group(1).startswith("^"):
                self._add_ref_def(st, ref, number)
            else:
                fdef = _FOOTNOTE_DEF.match(masked)
                if fdef:
                    st.footnote_defs.append(
                        FootnoteDef(fdef.group(1), number, Range(offset + fdef.start(), offset + fdef.end()))
                    )
                    masked = _blank_spans(masked, [(fdef.start(), fdef.end())])
                else:
                    is_paragraph = not (list_item or _THEMATIC.match(body) or _HTML_BLOCK.match(body))
                self._scan_inline(st, number, offset, content, masked)

        if is_paragraph:
            if not st.paragraph:
                st.paragraph_line = number
                st.paragraph_quoted = quoted
            st.paragraph.append(body)
        else:
            st.paragraph = []
        st.prev_blank = False
        return False

    def _mask_comments(
        self, st: _ScanState, number: int, offset: int, content: str, last_close: int
    ) -> str:
        """Blank out code spans and HTML comments, feeding directives as they close."""
        hidden: list[tuple[int, int]] = []
        pos = 0
        if st.in_comment:
            end = content.find("-->")
            if end < 0:
                st.comment_parts.append(content)
                return " " * len(content)
            st.comment_parts.append(content[:end])
            self._finish_comment(st)
            hidden.append((0, end + 3))
            pos = end + 3

        spans = [(s + pos, e + pos) for s, e in _code_span_ranges(content[pos:])]
        while True:
            start = content.find("<!--", pos)
            if start < 0:
                break
            if any(s <= start < e for s, e in spans):
                pos = start + 4
                continue
            end = content.find("-->", start + 4)
            if end >= 0:
                directive = parse_directive(content[start + 4 : end])
                if directive is not None:
                    st.inline.feed(number, directive)
                hidden.append((start, end + 3))
                pos = end + 3
                continue
            if offset + start < last_close:
                st.in_comment = True
                st.comment_line = number
                st.comment_parts = [content[start + 4 :]]
                hidden.append((start, len(content)))
            break
        return _blank_spans(content, hidden + spans)

    def _finish_comment(self, st: _ScanState) -> None:
        directive = parse_directive("\n".join(st.comment_parts))
        if directive is not None:
            st.inline.feed(st.comment_line, directive)
        st.in_comment = False
        st.comment_parts = []

    def _atx_heading(self, m: re.Match, body: str, number: int) -> _HeadingDraft:
        level = len(m.group(1))
        content = body[m.end() :]
        custom = None
        if content.rstrip().endswith("}"):
            attr = _ATTR_SUFFIX.search(content)
            if attr:
                custom = extract_custom_id(attr.group(1))
                content = content[: attr.start()]
        closed = _ATX_CLOSE.search(content)
        if closed:
            content = content[: closed.start()]
        # trailing whitespace is kept for the anchor; it decides edge hyphens
        return _HeadingDraft(level, content.strip(), content, number, "atx", custom)

    def _setext_heading(self, st: _ScanState, level: int) -> _HeadingDraft:
        raw = "\n".join(p.strip() for p in st.paragraph)
        custom = None
        if raw.rstrip().endswith("}"):
            attr = _ATTR_SUFFIX.search(raw)
            if attr:
                custom = extract_custom_id(attr.group(1))
                raw = raw[: attr.start()]
        text = " ".join(raw.split())
        return _HeadingDraft(level, text, text, st.paragraph_line, "setext", custom)

    def _add_ref_def(self, st: _ScanState, m: re.Match, number: int) -> None:
        label = normalize_label(m.group(1))
        target = m.group(2)
        if target.startswith("<") and target.endswith(">"):
            target = target[1:-1]
        title = m.group(3)[1:-1] if m.group(3) else None
        # first definition wins
        st.ref_defs.setdefault(label, ReferenceDefinition(label, target, title, number))

    def _scan_inline(self, st: _ScanState, number: int, offset: int, content: str, masked: str) -> None:
        for tag in _HTML_TAG.finditer(masked):
            self._html_anchor(st, tag, number, offset)

        for m in _FOOTNOTE_REF.finditer(masked):
            st.footnote_refs.append(
                FootnoteRef(m.group(1), number, Range(offset + m.start(), offset + m.end()))
            )

        consumed: list[tuple[int, int]] = []
        for m in _INLINE_LINK.finditer(masked):
            self._inline_link(st, m, content, number, offset, 0)
            # one level of nesting: an image inside link text
            for inner in _INLINE_LINK.finditer(m.group(2)):
                self._inline_link(st, inner, content, number, offset, m.start(2))
            consumed.append(m.span())
        masked = _blank_spans(masked, consumed)

        consumed = []
        for m in _FULL_REF.finditer(masked):
            self._pending_ref(st, m, m.group(3) or m.group(2), content, number, offset)
            consumed.append(m.span())
        masked = _blank_spans(masked, consumed)

        consumed = []
        for m in _SHORTCUT_REF.finditer(masked):
            if m.group(2).startswith("^"):
                continue
            self._pending_ref(st, m, m.group(2), content, number, offset)
            consumed.append(m.span())
        masked = _blank_spans(masked, consumed)

        consumed = []
        for m in _AUTOLINK.finditer(masked):
            self._add_link(st, m.group(1), number, offset + m.start(), offset + m.end(), m.start() + 1, style="autolink")
            consumed.append(m.span())
        for m in _EMAIL_AUTOLINK.finditer(masked):
            self._add_link(
                st, "mailto:" + m.group(1), number, offset + m.start(), offset + m.end(), m.start() + 1, style="autolink"
            )
            consumed.append(m.span())
        masked = _blank_spans(masked, consumed)

        for m in _BARE_URL.finditer(masked):
            url = m.group()
            if url.startswith("www."):
                url = "http://" + url
            self._add_link(st, url, number, offset + m.start(), offset + m.end(), m.start() + 1, style="autolink")

    def _html_anchor(self, st: _ScanState, tag: re.Match, number: int, offset: int) -> None:
        name = tag.group(1).lower()
        seen_id = seen_name = False
        for attr in _HTML_ATTR.finditer(tag.group(2)):
            key = attr.group(1).lower()
            value = next((g for g in attr.group(2, 3, 4) if g is not None), None)
            if key == "id" and not seen_id:
                seen_id = True
            elif key == "name" and name == "a" and not seen_name:
                seen_name = True
            else:
                continue
            if value:
                st.html_anchors.append(
                    HtmlAnchor(value, number, Range(offset + tag.start(), offset + tag.end()), name)
                )

    def _inline_link(
        self, st: _ScanState, m: re.Match, content: str, number: int, offset: int, base: int
    ) -> None:
        dest = m.group(3)
        if dest.startswith("<") and dest.endswith(">"):
            dest = dest[1:-1]
        start, end = base + m.start(), base + m.end()
        self._add_link(
            st,
            dest,
            number,
            offset + start,
            offset + end,
            start + 1,
            text=content[base + m.start(2) : base + m.end(2)],
            is_image=bool(m.group(1)),
        )

    def _pending_ref(
        self, st: _ScanState, m: re.Match, label: str, content: str, number: int, offset: int
    ) -> None:
        st.pending_refs.append(
            _PendingRef(
                normalize_label(label),
                content[m.start(2) : m.end(2)],
                number,
                m.start() + 1,
                Range(offset + m.start(), offset + m.end()),
                bool(m.group(1)),
            )
        )

    def _add_link(
        self,
        st: _ScanState,
        target: str,
        number: int,
        start: int,
        end: int,
        column: int,
        *,
        text: str = "",
        style: str = "inline",
        is_image: bool = False,
        reference: str | None = None,
    ) -> None:
        if any(marker in target for marker in _TEMPLATE_MARKERS):
            return
        path, fragment = split_fragment(target)
        verdict = classify(path)
        st.links.append(
            Link(
                target=target,
                fragment=fragment,
                line=number,
                column=column,
                range=Range(start, end),
                kind=verdict.kind,
                path=verdict.path,
                text=text,
                style=style,
                reference=reference,
                is_image=is_image,
            )
        )

    # -- final passes -----------------------------------------------------

    def _resolve_references(self, st: _ScanState) -> None:
        if not st.pending_refs:
            return
        for ref in st.pending_refs:
            definition = st.ref_defs.get(ref.label)
            if definition is None:
                continue
            self._add_link(
                st,
                definition.target,
                ref.line,
                ref.range.start,
                ref.range.end,
                ref.column,
                text=ref.text,
                style="reference",
                is_image=ref.is_image,
                reference=ref.label,
            )
        st.links.sort(key=lambda link: link.range.start)

    def _finalize_headings(self, st: _ScanState) -> tuple[list[Heading], list[Anchor]]:
        """Compute auto anchors and apply duplicate suffixes in document order."""
        headings: list[Heading] = []
        anchors: list[Anchor] = []
        used: set[str] = set()
        counts: dict[str, int] = {}
        for draft in st.headings:
            auto = generate(draft.anchor_source, self.dialect)
            if draft.custom is not None:
                anchors.append(Anchor(draft.custom, True, AnchorOrigin.CUSTOM, draft.line))
            # the auto anchor stays linkable next to a custom ID
            if auto:
                if auto in used:
                    n = counts.get(auto, 0) + 1
                    while f"{auto}-{n}" in used:
                        n += 1
                    counts[auto] = n
                    auto = f"{auto}-{n}"
                used.add(auto)
                anchors.append(Anchor(auto, False, AnchorOrigin.HEADING, draft.line))
            headings.append(
                Heading(draft.level, draft.text, draft.line, auto, draft.custom, draft.style)
            )
        return headings, anchors


def index_document(text: str | bytes, dialect: Dialect | str = Dialect.GITHUB) -> DocumentIndex:
    """Index one document. Convenience wrapper around DocumentParser."""
    return DocumentParser(dialect).parse(text)
