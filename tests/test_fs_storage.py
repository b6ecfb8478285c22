"""Tests for Markdown file discovery."""

import tempfile
from pathlib import Path

from lintmark.adapters.fs_storage import FsStorage


def make_tree(root: Path) -> None:
    for rel in [
        "README.md",
        "docs/guide.markdown",
        "docs/drafts/wip.md",
        "docs/image.png",
        ".git/notes.md",
        "node_modules/pkg/readme.md",
        ".hidden/x.md",
    ]:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("# x\n", encoding="utf-8")


def test_discover_walks_and_filters():
    """Test directories are walked with include patterns and skip rules."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        make_tree(root)
        storage = FsStorage(root)
        keys = [storage.key(p) for p in storage.discover()]
        assert keys == ["README.md", "docs/drafts/wip.md", "docs/guide.markdown"]


def test_exclude_patterns():
    """Test exclude patterns drop matching files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        make_tree(root)
        storage = FsStorage(root, exclude=["docs/drafts/*"])
        keys = [storage.key(p) for p in storage.discover()]
        assert keys == ["README.md", "docs/guide.markdown"]


def test_explicit_files_always_kept():
    """Test a file named explicitly is kept even if it does not match."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        make_tree(root)
        storage = FsStorage(root)
        found = storage.discover([root / "docs/image.png", root / "missing.md"])
        assert [storage.key(p) for p in found] == ["docs/image.png"]


def test_read_all():
    """Test reading yields workspace keys and text."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "a.md").write_text("héllo\n", encoding="utf-8")
        storage = FsStorage(root)
        assert list(storage.read_all([root / "a.md", root / "gone.md"])) == [("a.md", "héllo\n")]
