"""On-disk cache of a workspace index.

The file starts with a ``LMWI <version>`` header line followed by one JSON
object holding every field of each DocumentIndex except its text.
Documents loaded from the cache support every lint check and the anchors
listing, but not re-rendering or byte offsets. Front matter values that JSON
cannot hold (dates, for instance) come back as strings.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ..core.model import (
    Anchor,
    AnchorOrigin,
    CodeBlock,
    DirectiveSource,
    DocumentIndex,
    FootnoteDef,
    FootnoteRef,
    Heading,
    HtmlAnchor,
    InlineConfig,
    InlineConfigRegion,
    Line,
    Link,
    LinkKind,
    Range,
    ReferenceDefinition,
)
from ..errors import CacheError

logger = logging.getLogger(__name__)

CACHE_FILE = "workspace_index.json"
MAGIC = "LMWI"
FORMAT_VERSION = 2


def _encode_doc(doc: DocumentIndex) -> dict[str, Any]:
    fm_range = doc.front_matter_range
    return {
        "hash": doc.content_hash,
        "lines": [
            [l.range.start, l.range.end, int(l.in_code_block), int(l.in_front_matter)]
            for l in doc.lines
        ],
        "code_blocks": [[c.start_line, c.end_line, c.fence, c.info] for c in doc.code_blocks],
        "headings": [
            [h.level, h.text, h.line, h.auto_anchor, h.custom_anchor, h.style]
            for h in doc.headings
        ],
        "html_anchors": [
            [a.id, a.line, a.range.start, a.range.end, a.tag] for a in doc.html_anchors
        ],
        "anchors": [[a.value, a.case_sensitive, a.origin.value, a.line] for a in doc.anchors],
        "footnote_refs": [[f.id, f.line, f.range.start, f.range.end] for f in doc.footnote_refs],
        "footnote_defs": [[f.id, f.line, f.range.start, f.range.end] for f in doc.footnote_defs],
        "links": [
            [
                l.target, l.fragment, l.line, l.column, l.range.start, l.range.end,
                l.kind.value, l.path, l.text, l.style, l.reference, l.is_image,
            ]
            for l in doc.links
        ],
        "reference_definitions": {
            label: [d.id, d.target, d.title, d.line]
            for label, d in doc.reference_definitions.items()
        },
        "regions": [
            [r.rule, r.start_line, r.end_line, r.source.value] for r in doc.inline_config.regions
        ],
        "front_matter": doc.front_matter,
        "front_matter_range": [fm_range.start, fm_range.end] if fm_range else None,
        "front_matter_error": doc.front_matter_error,
        "file_config": doc.file_config,
    }


def _decode_doc(data: dict[str, Any]) -> DocumentIndex:
    fm_range = data["front_matter_range"]
    return DocumentIndex(
        text="",
        lines=tuple(
            Line(i, Range(start, end), bool(code), bool(fm))
            for i, (start, end, code, fm) in enumerate(data["lines"])
        ),
        code_blocks=tuple(CodeBlock(*c) for c in data["code_blocks"]),
        headings=tuple(Heading(*h) for h in data["headings"]),
        html_anchors=tuple(
            HtmlAnchor(aid, line, Range(start, end), tag)
            for aid, line, start, end, tag in data["html_anchors"]
        ),
        anchors=tuple(
            Anchor(value, case_sensitive, AnchorOrigin(origin), line)
            for value, case_sensitive, origin, line in data["anchors"]
        ),
        footnote_refs=tuple(
            FootnoteRef(fid, line, Range(start, end)) for fid, line, start, end in data["footnote_refs"]
        ),
        footnote_defs=tuple(
            FootnoteDef(fid, line, Range(start, end)) for fid, line, start, end in data["footnote_defs"]
        ),
        links=tuple(
            Link(
                target=target,
                fragment=fragment,
                line=line,
                column=column,
                range=Range(start, end),
                kind=LinkKind(kind),
                path=path,
                text=text,
                style=style,
                reference=reference,
                is_image=bool(is_image),
            )
            for (
                target, fragment, line, column, start, end, kind, path, text, style, reference, is_image
            ) in data["links"]
        ),
        reference_definitions={
            label: ReferenceDefinition(*d) for label, d in data["reference_definitions"].items()
        },
        inline_config=InlineConfig(
            tuple(
                InlineConfigRegion(rule, start, end, DirectiveSource(source))
                for rule, start, end, source in data["regions"]
            )
        ),
        front_matter=dict(data.get("front_matter") or {}),
        front_matter_range=Range(*fm_range) if fm_range else None,
        front_matter_error=data.get("front_matter_error"),
        file_config=dict(data.get("file_config") or {}),
        content_hash=data["hash"],
    )


def encode_index(files: dict[str, DocumentIndex], dialect: str) -> str:
    payload = {
        "dialect": dialect,
        "files": {path: _encode_doc(doc) for path, doc in sorted(files.items())},
    }
    return f"{MAGIC} {FORMAT_VERSION}\n" + json.dumps(payload, ensure_ascii=False, default=str)


def decode_index(raw: str, dialect: str) -> dict[str, DocumentIndex]:
    """
    Parse cache file contents.

    Raises:
        CacheError: on a wrong header, a format version mismatch, anchors
            generated for another dialect or a payload that does not have
            the expected shape
    """
    header, _, body = raw.partition("\n")
    parts = header.split()
    if len(parts) != 2 or parts[0] != MAGIC:
        raise CacheError("not a lintmark workspace cache")
    if parts[1] != str(FORMAT_VERSION):
        raise CacheError(f"cache format {parts[1]} (expected {FORMAT_VERSION})")
    try:
        payload = json.loads(body)
        cached_dialect = payload["dialect"]
        files = {path: _decode_doc(doc) for path, doc in payload["files"].items()}
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise CacheError(f"corrupt cache payload: {e}") from e
    if cached_dialect != dialect:
        raise CacheError(f"cache built for dialect {cached_dialect!r}")
    return files


def save_index(files: dict[str, DocumentIndex], cache_dir: Path, dialect: str) -> Path:
    """Write the cache atomically and return its path."""
    cache_dir = Path(cache_dir)
    cache_dir.mkdir(parents=True, exist_ok=True)
    target = cache_dir / CACHE_FILE
    fd, tmp = tempfile.mkstemp(dir=cache_dir, prefix=".workspace_index.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(encode_index(files, dialect))
        os.replace(tmp, target)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
    logger.debug("Saved %d documents to %s", len(files), target)
    return target


def load_index(cache_dir: Path, dialect: str) -> dict[str, DocumentIndex] | None:
    """
    Read the cache from ``cache_dir``.

    Returns None when there is no cache. An unusable cache file is removed
    and also yields None.
    """
    target = Path(cache_dir) / CACHE_FILE
    if not target.exists():
        return None
    try:
        files = decode_index(target.read_text(encoding="utf-8"), dialect)
    except (CacheError, UnicodeDecodeError) as e:
        logger.warning("Discarding workspace cache %s: %s", target, e)
        target.unlink(missing_ok=True)
        return None
    logger.debug("Loaded %d documents from %s", len(files), target)
    return files
