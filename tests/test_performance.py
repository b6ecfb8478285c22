"""Scaling checks for document indexing."""

import time

import pytest

from lintmark import generate, index_document


def best_time(text, runs=3):
    best = float("inf")
    for _ in range(runs):
        start = time.perf_counter()
        index_document(text)
        best = min(best, time.perf_counter() - start)
    return best


def nested_lists(n):
    lines = []
    for i in range(n):
        depth = i % 20
        lines.append("  " * depth + f"- item {i} [link](#item-{i}) `code` [^{i % 7}]")
    return "\n".join(lines) + "\n"


def nested_quotes(n):
    lines = []
    for i in range(n):
        lines.append("> " * (i % 15 + 1) + f"quote {i} *emph* [x](other.md#h{i})")
    return "\n".join(lines) + "\n"


def many_headings(n):
    return "".join(f"## Heading {i % 50}\n\ntext [a](#heading-{i % 50}-{i})\n\n" for i in range(n))


def unclosed_brackets(n):
    return "[" * n + "](" * n + "\n" + "<!--" * (n // 4) + "\n"


@pytest.mark.parametrize("builder", [nested_lists, nested_quotes, many_headings, unclosed_brackets])
def test_indexing_scales_linearly(builder):
    """Test doubling the input roughly doubles the indexing time."""
    small = builder(2000)
    large = builder(4000)
    # warm up regex caches
    index_document(small)

    t_small = best_time(small)
    t_large = best_time(large)
    # quadratic growth would be about 4x; allow noise below that
    assert t_large <= max(t_small * 3.5, 0.05)


def best_generate_time(text, runs=3):
    best = float("inf")
    for _ in range(runs):
        start = time.perf_counter()
        generate(text)
        best = min(best, time.perf_counter() - start)
    return best


@pytest.mark.parametrize(
    "unit",
    ["<!--", "_a ", "``a `", "[", "![", "[a](", "&  ", " ", "<a "],
)
def test_long_heading_anchor_scales_linearly(unit):
    """Test anchor generation on one long heading line stays linear."""
    small = unit * 8000
    large = unit * 16000
    generate(small)

    t_small = best_generate_time(small)
    t_large = best_generate_time(large)
    assert t_large <= max(t_small * 3, 0.05)


def test_long_heading_document_scales_linearly():
    """Test indexing a document made of one long heading stays linear."""
    small = "# " + "_a <!--" * 4000 + "\n"
    large = "# " + "_a <!--" * 8000 + "\n"
    index_document(small)

    assert best_time(large) <= max(best_time(small) * 3, 0.05)
