import fnmatch
import logging
from pathlib import Path
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)

SKIP_DIRS = {".git", ".hg", ".svn", "node_modules", "__pycache__"}


def _matches(rel: str, patterns: Iterable[str]) -> bool:
    for pattern in patterns:
        # "**/x" also matches "x" at the top level
        if fnmatch.fnmatchcase(rel, pattern):
            return True
        if pattern.startswith("**/") and fnmatch.fnmatchcase(rel, pattern[3:]):
            return True
    return False


class FsStorage:
    """Find and read Markdown files below a root directory."""

    def __init__(
        self,
        root: Path,
        include: Iterable[str] = ("**/*.md", "**/*.markdown"),
        exclude: Iterable[str] = (),
    ):
        self.root = root
        self.include = list(include)
        self.exclude = list(exclude)

    def key(self, path: Path) -> str:
        """Workspace key of a file: its path relative to the root, '/'-separated."""
        try:
            return path.resolve().relative_to(self.root.resolve()).as_posix()
        except ValueError:
            return path.as_posix()

    def path(self, key: str) -> Path:
        return self.root / key

    def wants(self, path: Path) -> bool:
        rel = self.key(path)
        if any(part in SKIP_DIRS or part.startswith(".") for part in Path(rel).parts[:-1]):
            return False
        return _matches(rel, self.include) and not _matches(rel, self.exclude)

    def discover(self, paths: Iterable[Path] | None = None) -> list[Path]:
        """
        Expand files and directories into the Markdown files to lint.

        Files named explicitly are always kept; directories are walked and
        filtered through include/exclude patterns.
        """
        found: dict[Path, None] = {}
        for p in paths or [self.root]:
            if p.is_dir():
                for candidate in sorted(p.rglob("*")):
                    if candidate.is_file() and self.wants(candidate):
                        found[candidate] = None
            elif p.is_file():
                found[p] = None
            else:
                logger.warning("No such file or directory: %s", p)
        return list(found)

    def read_raw(self, path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("Skipping %s: %s", path, e)
            return None

    def read_all(self, paths: Iterable[Path]) -> Iterator[tuple[str, str]]:
        """Yield (key, text) for every readable file."""
        for p in paths:
            text = self.read_raw(p)
            if text is not None:
                yield self.key(p), text
