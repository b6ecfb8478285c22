"""Workspace-wide index for cross-file fragment validation.

Cross-file checking runs in two phases: every file is indexed and inserted
first, then links are resolved against the complete index. Resolving while
files are still being inserted only sees part of the workspace and silently
misses problems.
"""

from __future__ import annotations

import logging
import os
import threading
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator
from urllib.parse import unquote

from .core.anchors import Dialect
from .core.model import DocumentIndex, Heading, Link, LinkKind
from .core.utils import content_hash, normalize_path, resolve_relative

logger = logging.getLogger(__name__)

PathLike = str | os.PathLike


def path_key(path: PathLike) -> str:
    """Normalized form used for every WorkspaceIndex key."""
    return normalize_path(os.fspath(path))


@dataclass(frozen=True)
class VulnerableAnchor:
    """A heading whose anchor changes whenever its text changes (no custom ID)."""
    path: str
    line: int
    text: str


@dataclass(frozen=True)
class UnresolvedLink:
    source: str
    link: Link
    target: str


class WorkspaceIndex:
    """
    Map from normalized file path to DocumentIndex.

    Writers are serialized with a lock so worker threads may insert their
    results directly. Reads do not block each other.
    """

    def __init__(self, dialect: Dialect | str = Dialect.GITHUB) -> None:
        self.dialect = Dialect.parse(dialect)
        self._files: dict[str, DocumentIndex] = {}
        # target path -> paths of files linking to it
        self._reverse_deps: dict[str, set[str]] = defaultdict(set)
        self._forward_deps: dict[str, set[str]] = {}
        self._version = 0
        self._lock = threading.RLock()

    @property
    def version(self) -> int:
        """Bumped on every change; used to invalidate derived data."""
        return self._version

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, path: PathLike) -> bool:
        return path_key(path) in self._files

    def get_file(self, path: PathLike) -> DocumentIndex | None:
        return self._files.get(path_key(path))

    def insert_file(self, path: PathLike, index: DocumentIndex) -> None:
        """Insert or replace the index for ``path`` and refresh its outgoing links."""
        key = path_key(path)
        with self._lock:
            self._drop_as_source(key)
            targets = {
                self.resolve_target(key, link)
                for link in index.links
                if link.kind in (LinkKind.CROSS_FILE, LinkKind.ABSOLUTE_PATH) and link.path
            }
            for target in targets:
                self._reverse_deps[target].add(key)
            self._forward_deps[key] = targets
            self._files[key] = index
            self._version += 1

    def update_file(self, path: PathLike, text: str) -> bool:
        """
        Re-index ``path`` from ``text`` unless the stored copy is current.

        Returns True when the file was (re)indexed.
        """
        from .adapters.document_parser import index_document

        if not self.is_file_stale(path, content_hash(text)):
            return False
        self.insert_file(path, index_document(text, self.dialect))
        return True

    def remove_file(self, path: PathLike) -> DocumentIndex | None:
        key = path_key(path)
        with self._lock:
            self._drop_as_source(key)
            removed = self._files.pop(key, None)
            if removed is not None:
                self._version += 1
            return removed

    def clear(self) -> None:
        with self._lock:
            self._files.clear()
            self._reverse_deps.clear()
            self._forward_deps.clear()
            self._version += 1

    def retain_only(self, paths: Iterable[PathLike]) -> int:
        """Drop every file not in ``paths``; returns how many were removed."""
        keep = {path_key(p) for p in paths}
        with self._lock:
            stale = [key for key in self._files if key not in keep]
            for key in stale:
                self.remove_file(key)
        return len(stale)

    def _drop_as_source(self, key: str) -> None:
        for target in self._forward_deps.pop(key, ()):
            deps = self._reverse_deps.get(target)
            if deps is None:
                continue
            deps.discard(key)
            if not deps:
                del self._reverse_deps[target]

    @staticmethod
    def resolve_target(source: str, link: Link) -> str:
        """
        Workspace key a cross-file or absolute link points at.

        Absolute paths are taken relative to the workspace root.
        """
        target = unquote(link.path or "")
        if link.kind is LinkKind.ABSOLUTE_PATH:
            path = normalize_path(target)
            # drive-letter and UNC paths never name a workspace file
            if target.replace("\\", "/").startswith("//") or path[1:2] == ":":
                return "//" + path.lstrip("/")
            return path.lstrip("/")
        return resolve_relative(source, target)

    def get_dependents(self, path: PathLike) -> list[str]:
        """Files containing links to ``path``, sorted."""
        return sorted(self._reverse_deps.get(path_key(path), ()))

    def is_file_stale(self, path: PathLike, current_hash: str) -> bool:
        doc = self.get_file(path)
        return doc is None or doc.content_hash != current_hash

    def has_anchor(self, path: PathLike, fragment: str) -> bool:
        """
        Check whether ``fragment`` names an anchor in the file at ``path``.

        Returns False when the file is not indexed. An empty fragment always
        resolves.
        """
        doc = self.get_file(path)
        if doc is None:
            return False
        return not fragment or doc.has_anchor(fragment)

    def is_rule_disabled_at_line(self, path: PathLike, rule: str, line: int) -> bool:
        doc = self.get_file(path)
        return doc is not None and doc.is_rule_disabled_at_line(rule, line)

    def files(self) -> Iterator[tuple[str, DocumentIndex]]:
        """Sorted snapshot of the indexed files; later changes do not show up."""
        with self._lock:
            items = sorted(self._files.items())
        yield from items

    def all_headings(self) -> Iterator[tuple[str, Heading]]:
        for key, doc in self.files():
            for heading in doc.headings:
                yield key, heading

    def get_vulnerable_anchors(self) -> dict[str, list[VulnerableAnchor]]:
        """
        Group auto-generated heading anchors without a custom ID by anchor.

        These anchors break when a heading is reworded or translated, so
        links to them are candidates for an explicit ``{#id}``.
        """
        out: dict[str, list[VulnerableAnchor]] = defaultdict(list)
        for key, heading in self.all_headings():
            if heading.custom_anchor is None and heading.auto_anchor:
                out[heading.auto_anchor.lower()].append(
                    VulnerableAnchor(key, heading.line, heading.text)
                )
        return dict(out)

    def save_to_cache(self, cache_dir: Path) -> Path:
        from .adapters.index_cache import save_index

        with self._lock:
            snapshot = dict(self._files)
        return save_index(snapshot, cache_dir, self.dialect.value)

    @classmethod
    def load_from_cache(
        cls, cache_dir: Path, dialect: Dialect | str = Dialect.GITHUB
    ) -> "WorkspaceIndex | None":
        """Rebuild an index from the cache, or None when there is no usable cache."""
        from .adapters.index_cache import load_index

        ws = cls(dialect)
        files = load_index(cache_dir, ws.dialect.value)
        if files is None:
            return None
        for key, doc in files.items():
            ws.insert_file(key, doc)
        return ws


class CrossFileResolver:
    """
    Check fragments of links that point into other files.

    Only CROSS_FILE and ABSOLUTE_PATH links with a non-empty fragment are
    considered. A target that is not in the workspace is skipped: it may
    simply live outside the set of files being linted.
    """

    def __init__(self, workspace: WorkspaceIndex):
        self.workspace = workspace

    def unresolved(self, source: PathLike, doc: DocumentIndex | None = None) -> list[UnresolvedLink]:
        key = path_key(source)
        if doc is None:
            doc = self.workspace.get_file(key)
            if doc is None:
                return []
        out: list[UnresolvedLink] = []
        for link in doc.cross_file_links():
            target = self.workspace.resolve_target(key, link)
            target_doc = self.workspace.get_file(target)
            if target_doc is None:
                logger.debug("%s:%d: target %s not indexed, skipping", key, link.line, target)
                continue
            if not target_doc.has_anchor(link.fragment or ""):
                out.append(UnresolvedLink(key, link, target))
        return out
