"""Tests for inline rule-control comments."""

from lintmark import index_document
from lintmark.adapters.inline_config import InlineConfigBuilder, parse_directive
from lintmark.core.model import ALL_RULES, DirectiveSource


def disabled_lines(doc, rule, upto):
    return [n for n in range(1, upto + 1) if doc.is_rule_disabled_at_line(rule, n)]


def test_parse_directive():
    """Test directive parsing, rule normalization and aliases."""
    d = parse_directive(" markdownlint-disable md051 link-fragments ")
    assert d.action == "disable"
    assert d.rules == ("MD051", "MD051")

    assert parse_directive("lintmark-enable").rules == (ALL_RULES,)
    assert parse_directive("markdownlint-disable-next-line MD063,MD051").rules == ("MD063", "MD051")
    assert parse_directive("just a comment") is None
    assert parse_directive("markdownlint-disabled MD051") is None


def test_prettier_ignore():
    """Test prettier-ignore disables every rule on the next line."""
    d = parse_directive(" prettier-ignore ")
    assert d.action == "disable-next-line"
    assert d.rules == (ALL_RULES,)


def test_disable_enable_span():
    """Test a disable/enable pair covers the lines in between."""
    doc = index_document(
        "<!-- markdownlint-disable MD051 -->\n"
        "[a](#missing)\n"
        "<!-- markdownlint-enable MD051 -->\n"
        "[b](#missing)\n"
    )
    # the directive's own line keeps the previous state
    assert disabled_lines(doc, "MD051", 4) == [2, 3]
    assert disabled_lines(doc, "MD063", 4) == []


def test_disable_to_end_of_file():
    """Test a disable without a matching enable runs to the end."""
    doc = index_document("a\n<!-- lintmark-disable -->\nb\nc\n")
    assert disabled_lines(doc, "MD051", 4) == [3, 4]
    assert doc.is_rule_disabled_at_line("MD051", 1000)


def test_disable_line():
    """Test disable-line only covers its own line."""
    doc = index_document("[a](#x) <!-- markdownlint-disable-line MD051 -->\n[b](#y)\n")
    assert disabled_lines(doc, "MD051", 2) == [1]


def test_disable_next_line():
    """Test disable-next-line only covers the following line."""
    doc = index_document("<!-- markdownlint-disable-next-line -->\n[a](#x)\n[b](#y)\n")
    assert disabled_lines(doc, "MD051", 3) == [2]
    assert disabled_lines(doc, "MD063", 3) == [2]


def test_disable_file():
    """Test disable-file applies everywhere, even before the comment."""
    doc = index_document("a\nb\n<!-- markdownlint-disable-file MD063 -->\n")
    assert disabled_lines(doc, "MD063", 3) == [1, 2, 3]
    assert disabled_lines(doc, "MD051", 3) == []
    assert doc.inline_config.file_disabled_rules() == {"MD063"}


def test_enable_file_exception():
    """Test enable-file re-enables one rule while all are disabled for the file."""
    doc = index_document(
        "<!-- markdownlint-disable-file -->\n<!-- markdownlint-enable-file MD051 -->\nx\n"
    )
    assert disabled_lines(doc, "MD051", 3) == []
    assert disabled_lines(doc, "MD063", 3) == [1, 2, 3]


def test_enable_one_while_all_disabled():
    """Test enabling one rule while everything is disabled."""
    doc = index_document(
        "<!-- markdownlint-disable -->\n"
        "<!-- markdownlint-enable MD063 -->\n"
        "x\n"
    )
    assert doc.is_rule_disabled_at_line("MD051", 3)
    assert not doc.is_rule_disabled_at_line("MD063", 3)
    assert doc.is_rule_disabled_at_line("MD063", 2)


def test_capture_restore():
    """Test capture and restore save and reinstate the state."""
    doc = index_document(
        "<!-- markdownlint-disable MD051 -->\n"
        "<!-- markdownlint-capture -->\n"
        "<!-- markdownlint-enable -->\n"
        "x\n"
        "<!-- markdownlint-restore -->\n"
        "y\n"
    )
    assert not doc.is_rule_disabled_at_line("MD051", 4)
    assert doc.is_rule_disabled_at_line("MD051", 6)


def test_restore_without_capture_resets():
    """Test restore with nothing captured returns to all-enabled."""
    doc = index_document("<!-- markdownlint-disable -->\n<!-- markdownlint-restore -->\nx\n")
    assert not doc.is_rule_disabled_at_line("MD051", 3)


def test_configure_file():
    """Test configure-file JSON is exposed and false disables a rule."""
    doc = index_document(
        '<!-- markdownlint-configure-file { "MD063": false, '
        '"link-fragments": { "x": 1 } } -->\n'
    )
    assert doc.file_config == {"MD063": False, "MD051": {"x": 1}}
    assert doc.is_rule_disabled_at_line("MD063", 1)
    assert not doc.is_rule_disabled_at_line("MD051", 1)


def test_configure_file_malformed_ignored():
    """Test malformed configure-file payloads are ignored."""
    doc = index_document("<!-- markdownlint-configure-file {not json} -->\n")
    assert doc.file_config == {}


def test_multiline_directive():
    """Test a directive comment spanning several lines."""
    doc = index_document("<!-- markdownlint-disable\n     MD051 -->\nx\n")
    assert doc.is_rule_disabled_at_line("MD051", 3)
    assert not doc.is_rule_disabled_at_line("MD063", 3)


def test_directive_in_code_block_ignored():
    """Test directives inside fenced code are not applied."""
    doc = index_document("```\n<!-- markdownlint-disable -->\n```\nx\n")
    assert not doc.is_rule_disabled_at_line("MD051", 4)


def test_builder_regions():
    """Test the builder emits bounded and open-ended regions."""
    builder = InlineConfigBuilder()
    builder.feed(2, parse_directive("markdownlint-disable MD051"))
    builder.feed(5, parse_directive("markdownlint-enable MD051"))
    builder.feed(7, parse_directive("markdownlint-disable MD063"))
    regions = builder.build().regions

    spans = [(r.rule, r.start_line, r.end_line, r.source) for r in regions]
    assert ("MD051", 3, 5, DirectiveSource.DISABLE) in spans
    assert ("MD063", 8, None, DirectiveSource.DISABLE) in spans
    assert len(spans) == 2
