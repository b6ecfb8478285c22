"""Tests for the workspace index, cross-file resolution and the cache."""

import tempfile
import threading
from pathlib import Path

from lintmark import index_document
from lintmark.adapters.index_cache import CACHE_FILE, decode_index, encode_index
from lintmark.core.utils import content_hash, normalize_path, resolve_relative
from lintmark.errors import CacheError
from lintmark.workspace import CrossFileResolver, WorkspaceIndex


def build_workspace(files):
    ws = WorkspaceIndex()
    for path, text in files.items():
        ws.insert_file(path, index_document(text))
    return ws


def test_normalize_path():
    """Test path normalization."""
    assert normalize_path("docs/./guide/../intro.md") == "docs/intro.md"
    assert normalize_path("docs\\intro.md") == "docs/intro.md"
    assert normalize_path("/abs//x.md") == "/abs/x.md"
    assert resolve_relative("docs/a.md", "../b.md") == "b.md"
    assert resolve_relative("docs/a.md", "sub/c.md") == "docs/sub/c.md"
    assert resolve_relative("a.md", "b.md") == "b.md"


def test_insert_and_get():
    """Test insert_file replaces by normalized path."""
    ws = WorkspaceIndex()
    ws.insert_file("docs/./a.md", index_document("# One\n"))
    ws.insert_file("docs/a.md", index_document("# Two\n"))

    assert len(ws) == 1
    assert "docs/a.md" in ws
    assert ws.get_file("docs/a.md").headings[0].text == "Two"
    assert ws.get_file("missing.md") is None


def test_has_anchor():
    """Test anchor lookup across files and anchor kinds."""
    ws = build_workspace({
        "a.md": '# Getting Started\n\n## Setup {#SetUpGuide}\n\n<a id="Legacy"></a>\n',
    })
    assert ws.has_anchor("a.md", "getting-started")
    assert ws.has_anchor("a.md", "Getting-Started")
    assert ws.has_anchor("a.md", "SetUpGuide")
    assert not ws.has_anchor("a.md", "setupguide")
    assert ws.has_anchor("a.md", "setup")
    assert ws.has_anchor("a.md", "Legacy")
    assert not ws.has_anchor("a.md", "legacy")
    assert ws.has_anchor("a.md", "")
    assert not ws.has_anchor("b.md", "getting-started")


def test_is_rule_disabled_at_line():
    """Test inline config queries through the workspace."""
    ws = build_workspace({"a.md": "x\n<!-- markdownlint-disable-next-line MD051 -->\ny\n"})
    assert ws.is_rule_disabled_at_line("a.md", "MD051", 3)
    assert not ws.is_rule_disabled_at_line("a.md", "MD051", 1)
    assert not ws.is_rule_disabled_at_line("other.md", "MD051", 3)


def test_version_counter():
    """Test the version increases on every change."""
    ws = WorkspaceIndex()
    v0 = ws.version
    ws.insert_file("a.md", index_document("# A\n"))
    assert ws.version == v0 + 1
    ws.remove_file("missing.md")
    assert ws.version == v0 + 1
    ws.remove_file("a.md")
    assert ws.version == v0 + 2
    ws.clear()
    assert ws.version == v0 + 3


def test_retain_only():
    """Test retain_only drops files outside the given set."""
    ws = build_workspace({"a.md": "", "b.md": "", "c.md": ""})
    removed = ws.retain_only(["a.md", "./c.md"])
    assert removed == 1
    assert [path for path, _ in ws.files()] == ["a.md", "c.md"]


def test_reverse_dependencies():
    """Test dependents are tracked and refreshed on re-insert."""
    ws = build_workspace({
        "docs/a.md": "[x](b.md#top) [y](../guide.md)\n",
        "docs/b.md": "# Top\n",
        "guide.md": "[z](/docs/b.md#top)\n",
    })
    assert ws.get_dependents("docs/b.md") == ["docs/a.md", "guide.md"]
    assert ws.get_dependents("guide.md") == ["docs/a.md"]

    ws.insert_file("docs/a.md", index_document("no links\n"))
    assert ws.get_dependents("docs/b.md") == ["guide.md"]
    assert ws.get_dependents("guide.md") == []

    # dependents survive removal of the target so a re-created file finds them
    ws.remove_file("docs/b.md")
    assert ws.get_dependents("docs/b.md") == ["guide.md"]


def test_update_file_and_staleness():
    """Test update_file only re-indexes changed content."""
    ws = WorkspaceIndex()
    assert ws.is_file_stale("a.md", content_hash("# A\n"))
    assert ws.update_file("a.md", "# A\n") is True
    assert not ws.is_file_stale("a.md", content_hash("# A\n"))
    assert ws.update_file("a.md", "# A\n") is False
    assert ws.update_file("a.md", "# B\n") is True
    assert ws.has_anchor("a.md", "b")


def test_update_file_uses_dialect():
    """Test update_file indexes with the workspace dialect."""
    ws = WorkspaceIndex("kramdown")
    ws.update_file("a.md", "# über_cool\n")
    assert ws.has_anchor("a.md", "bercool")


def test_vulnerable_anchors():
    """Test auto anchors without custom IDs are reported across files."""
    ws = build_workspace({
        "a.md": "# Intro\n\n## Stable {#stable}\n",
        "b.md": "# Intro\n",
    })
    vulnerable = ws.get_vulnerable_anchors()
    assert set(vulnerable) == {"intro"}
    assert [(v.path, v.line, v.text) for v in vulnerable["intro"]] == [
        ("a.md", 1, "Intro"),
        ("b.md", 1, "Intro"),
    ]


def test_all_headings():
    """Test iterating headings of every file in path order."""
    ws = build_workspace({"b.md": "# B\n", "a.md": "# A1\n# A2\n"})
    assert [(p, h.text) for p, h in ws.all_headings()] == [("a.md", "A1"), ("a.md", "A2"), ("b.md", "B")]


def test_cross_file_resolver():
    """Test cross-file fragments are checked against the target file."""
    ws = build_workspace({
        "docs/a.md": (
            "[ok](b.md#top)\n"
            "[bad](b.md#nowhere)\n"
            "[missing file](gone.md#top)\n"
            "[no fragment](b.md)\n"
            "[empty fragment](b.md#)\n"
            "[abs](/docs/b.md#nowhere-abs)\n"
            "[encoded](my%20file.md#sec)\n"
            "[local](#nope)\n"
        ),
        "docs/b.md": "# Top\n",
        "docs/my file.md": "# Sec\n",
    })
    unresolved = CrossFileResolver(ws).unresolved("docs/a.md")
    assert [(u.link.fragment, u.target) for u in unresolved] == [
        ("nowhere", "docs/b.md"),
        ("nowhere-abs", "docs/b.md"),
    ]


def test_resolver_unknown_source():
    """Test an unknown source file yields nothing."""
    assert CrossFileResolver(WorkspaceIndex()).unresolved("nope.md") == []


def test_concurrent_inserts():
    """Test inserts from several threads are all recorded."""
    ws = WorkspaceIndex()
    docs = {f"f{i}.md": index_document(f"# H{i}\n[x](f{i + 1}.md#h{i + 1})\n") for i in range(200)}

    def worker(items):
        for path, doc in items:
            ws.insert_file(path, doc)

    items = list(docs.items())
    threads = [threading.Thread(target=worker, args=(items[i::4],)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(ws) == 200
    assert ws.version == 200
    assert ws.get_dependents("f5.md") == ["f4.md"]


def test_files_while_inserting():
    """Test listing files while another thread inserts never fails."""
    ws = WorkspaceIndex()
    docs = [(f"f{i}.md", index_document(f"# H{i}\n")) for i in range(500)]
    errors = []

    def writer():
        for path, doc in docs:
            ws.insert_file(path, doc)

    def reader():
        try:
            while len(ws) < len(docs):
                keys = [key for key, _ in ws.files()]
                assert keys == sorted(keys)
        except RuntimeError as e:
            errors.append(e)

    threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(list(ws.files())) == 500


def test_files_is_a_snapshot():
    """Test a file inserted mid-iteration is not listed."""
    ws = build_workspace({"b.md": "# B\n", "c.md": "# C\n"})
    listing = ws.files()
    first, _ = next(listing)
    ws.insert_file("a.md", index_document("# A\n"))
    assert [first] + [key for key, _ in listing] == ["b.md", "c.md"]


def test_cache_roundtrip():
    """Test saving and loading the cache keeps every indexed field."""
    ws = build_workspace({
        "a.md": (
            "---\ndate: 2024-01-02\n---\n"
            "# Title {#custom}\n\n## Other\n\n[x](b.md#top) [y][r]\n\n"
            '<a id="box"></a>\n\n```py\ncode\n```\n\n'
            "Text[^1]\n\n[^1]: n\n<!-- markdownlint-disable-file MD063 -->\n\n[r]: b.md#top \"Top\"\n"
        ),
        "b.md": "# Top\n",
    })
    with tempfile.TemporaryDirectory() as tmpdir:
        cache_dir = Path(tmpdir) / "cache"
        path = ws.save_to_cache(cache_dir)
        assert path == cache_dir / CACHE_FILE
        assert path.read_text(encoding="utf-8").startswith("LMWI ")

        loaded = WorkspaceIndex.load_from_cache(cache_dir)

    assert loaded is not None
    assert [p for p, _ in loaded.files()] == ["a.md", "b.md"]
    a = loaded.get_file("a.md")
    fresh = ws.get_file("a.md")
    assert a.headings == fresh.headings
    assert a.anchors == fresh.anchors
    assert a.html_anchors == fresh.html_anchors
    assert [h.id for h in a.html_anchors] == ["box"]
    assert a.code_blocks == fresh.code_blocks
    assert a.links == fresh.links
    assert a.reference_definitions == fresh.reference_definitions
    assert a.footnote_defs == fresh.footnote_defs
    assert a.lines == fresh.lines
    assert a.front_matter_range == fresh.front_matter_range
    assert a.front_matter == {"date": "2024-01-02"}
    assert a.content_hash == fresh.content_hash
    assert loaded.has_anchor("a.md", "custom")
    assert loaded.has_anchor("a.md", "title")
    assert loaded.has_anchor("a.md", "box")
    assert loaded.is_rule_disabled_at_line("a.md", "MD063", 1)
    assert loaded.get_dependents("b.md") == ["a.md"]
    assert not loaded.is_file_stale("b.md", content_hash("# Top\n"))


def test_cache_missing_returns_none():
    """Test loading from an empty directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        assert WorkspaceIndex.load_from_cache(Path(tmpdir)) is None


def test_bad_cache_is_removed():
    """Test a corrupt cache file is deleted and ignored."""
    with tempfile.TemporaryDirectory() as tmpdir:
        cache_dir = Path(tmpdir)
        bad = cache_dir / CACHE_FILE
        for contents in ["garbage", "LMWI 999\n{}", "LMWI 2\n{not json", 'LMWI 2\n{"files": 3}']:
            bad.write_text(contents, encoding="utf-8")
            assert WorkspaceIndex.load_from_cache(cache_dir) is None
            assert not bad.exists()


def test_cache_dialect_mismatch():
    """Test a cache built for another dialect is rejected."""
    ws = build_workspace({"a.md": "# A\n"})
    with tempfile.TemporaryDirectory() as tmpdir:
        ws.save_to_cache(Path(tmpdir))
        assert WorkspaceIndex.load_from_cache(Path(tmpdir), "kramdown") is None


def test_decode_index_errors():
    """Test the decoder raises CacheError on bad input."""
    raw = encode_index({"a.md": index_document("# A\n")}, "github")
    assert set(decode_index(raw, "github")) == {"a.md"}
    for bad in ["", "XXXX 1\n{}", raw.replace("LMWI 2", "LMWI 3")]:
        try:
            decode_index(bad, "github")
        except CacheError:
            continue
        raise AssertionError(f"no CacheError for {bad!r}")


def test_drive_and_unc_targets_not_resolved():
    """Test drive-letter and UNC targets never map onto workspace files."""
    ws = build_workspace({
        "a.md": "[unc](//share/b.md#nope) [drive](C:/share/b.md#nope) [root](/share/b.md#nope)\n",
        "share/b.md": "# B\n",
    })
    links = ws.get_file("a.md").links
    assert [WorkspaceIndex.resolve_target("a.md", link) for link in links] == [
        "//share/b.md",
        "//C:/share/b.md",
        "share/b.md",
    ]
    assert [u.link.target for u in CrossFileResolver(ws).unresolved("a.md")] == ["/share/b.md#nope"]
