"""Tests for link target classification."""

import pytest

from lintmark.core.classify import classify, split_fragment
from lintmark.core.model import LinkKind


@pytest.mark.parametrize(
    "target",
    [
        "http://example.com/page",
        "https://example.com/file.md",
        "HTTPS://EXAMPLE.COM",
        "ftp://files.example.com/a.txt",
        "mailto:someone@example.com",
        "file:///tmp/notes.md",
        "http://example.com:8080/file.md",
        "vscode://settings",
    ],
)
def test_external(target):
    """Test URLs with a scheme are external."""
    assert classify(target).kind is LinkKind.EXTERNAL


def test_empty_is_local():
    """Test an empty target (plain #fragment link) is local."""
    assert classify("").kind is LinkKind.AMBIGUOUS_LOCAL


@pytest.mark.parametrize(
    "target",
    ["/absolute/file.md", "//server/file.md", "C:\\docs\\file.md", "c:/docs/file.md", "\\\\share\\file.md"],
)
def test_absolute_paths(target):
    """Test rooted, drive and UNC paths are absolute."""
    result = classify(target)
    assert result.kind is LinkKind.ABSOLUTE_PATH
    assert result.path == target


@pytest.mark.parametrize(
    "target",
    [
        "guide.md",
        "./local.md",
        "../docs/readme.md",
        "path/to/deep/file.md",
        "folder\\file.md",
        "file%20name.md",
        "data.tar.gz",
        "file.name.ext",
        ".md",
        ".gitignore",
        ".hidden",
        "文档.md",
        "FILE.Md",
        "file.md2",
    ],
)
def test_cross_file(target):
    """Test targets whose last segment has an extension are cross-file."""
    result = classify(target)
    assert result.kind is LinkKind.CROSS_FILE
    assert result.path == target


def test_query_is_stripped():
    """Test a query string is not part of the extension check or the path."""
    result = classify("file.md?version=1.0")
    assert result.kind is LinkKind.CROSS_FILE
    assert result.path == "file.md"


@pytest.mark.parametrize("target", ["somefile", "file.", "a.b.", "docs/v1.2.", "file@name", "文档", "docs/intro"])
def test_ambiguous(target):
    """Test extensionless or trailing-dot targets are ambiguous local links."""
    result = classify(target)
    assert result.kind is LinkKind.AMBIGUOUS_LOCAL
    assert result.path is None


def test_other_dotted_targets_are_cross_file():
    """Test dotted targets without a plausible extension fall back to cross-file."""
    assert classify("config.ini.backup").kind is LinkKind.CROSS_FILE
    assert classify("v1.2-notes").kind is LinkKind.CROSS_FILE


def test_split_fragment():
    """Test splitting at the first hash."""
    assert split_fragment("file.md#section") == ("file.md", "section")
    assert split_fragment("file.md#section#sub") == ("file.md", "section#sub")
    assert split_fragment("#only") == ("", "only")
    assert split_fragment("file.md#") == ("file.md", "")
    assert split_fragment("file.md") == ("file.md", None)
