"""Heading anchor generation for the supported renderer dialects."""

from __future__ import annotations

import re
import unicodedata
from enum import Enum


class Dialect(str, Enum):
    GITHUB = "github"
    KRAMDOWN = "kramdown"
    KRAMDOWN_GFM = "kramdown-gfm"

    @classmethod
    def parse(cls, value: "str | Dialect") -> "Dialect":
        """
        Look up a dialect by name.

        Accepts the canonical names plus a few spellings seen in the wild
        (``gfm``, ``kramdown_gfm``, ``jekyll``).

        Raises:
            ValueError: if the name is not recognised
        """
        if isinstance(value, Dialect):
            return value
        key = value.strip().lower().replace("_", "-")
        key = _DIALECT_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            names = ", ".join(d.value for d in cls)
            raise ValueError(f"Unknown anchor dialect '{value}' (expected one of: {names})") from None


_DIALECT_ALIASES = {
    "gfm": "github",
    "gh": "github",
    "jekyll": "kramdown-gfm",
    "kramdown-gfm": "kramdown-gfm",
}

_BACKTICKS = re.compile(r"`+")
_UNDERSCORES = re.compile(r"_+")
_IMAGE = re.compile(r"!\[([^\[\]]*)\]\([^()]*\)")
_INLINE_LINK = re.compile(r"\[([^\[\]]*)\]\([^()]*\)")
_REF_LINK = re.compile(r"\[([^\[\]]*)\]\[[^\[\]]*\]")
_HTML_TAG = re.compile(r"</?[A-Za-z][^<>]*>")
_ESCAPE = re.compile(r"\\([!-/:-@\[-`{-~])")


def _pair_runs(runs: list[tuple[int, int]], opens, closes) -> list[tuple[int, int]]:
    """
    Pair delimiter runs left to right.

    Each opener is paired with the nearest later closer of the same length;
    scanning resumes after that closer. Returns (opener, closer) indexes.
    """
    following: list[int | None] = [None] * len(runs)
    nearest: dict[int, int] = {}
    for i in range(len(runs) - 1, -1, -1):
        size = runs[i][1] - runs[i][0]
        following[i] = nearest.get(size)
        if closes(i):
            nearest[size] = i
    pairs = []
    i = 0
    while i < len(runs):
        j = following[i]
        if j is not None and opens(i):
            pairs.append((i, j))
            i = j + 1
        else:
            i += 1
    return pairs


def strip_markup(text: str) -> str:
    """
    Remove inline Markdown markup, keeping the visible text.

    Links keep their text, images keep their alt text, code spans keep their
    content verbatim, raw HTML tags vanish. Asterisks and tildes are left in
    place; they are dropped later with the rest of the punctuation.
    """
    runs = [m.span() for m in _BACKTICKS.finditer(text)]
    pieces: list[str] = []
    pos = 0
    for i, j in _pair_runs(runs, lambda i: True, lambda i: True):
        pieces.append(_strip_prose(text[pos : runs[i][0]]))
        pieces.append(text[runs[i][1] : runs[j][0]])
        pos = runs[j][1]
    pieces.append(_strip_prose(text[pos:]))
    return "".join(pieces)


def _strip_comments(text: str) -> str:
    pieces = []
    pos = 0
    while True:
        start = text.find("<!--", pos)
        if start < 0:
            break
        end = text.find("-->", start + 4)
        if end < 0:
            break
        pieces.append(text[pos:start])
        pos = end + 3
    pieces.append(text[pos:])
    return "".join(pieces)


def _strip_underscores(text: str) -> str:
    runs = [m.span() for m in _UNDERSCORES.finditer(text)]
    if len(runs) < 2:
        return text

    def opens(i: int) -> bool:
        start, end = runs[i]
        before = text[start - 1] if start else " "
        return not (before.isalnum() or before == "\\") and end < len(text) and not text[end].isspace()

    def closes(i: int) -> bool:
        start, end = runs[i]
        return start > 0 and not text[start - 1].isspace() and (end == len(text) or not text[end].isalnum())

    pieces = []
    pos = 0
    for i, j in _pair_runs(runs, opens, closes):
        pieces.append(text[pos : runs[i][0]])
        pieces.append(text[runs[i][1] : runs[j][0]])
        pos = runs[j][1]
    pieces.append(text[pos:])
    return "".join(pieces)


def _strip_prose(text: str) -> str:
    if not text:
        return text
    text = _HTML_TAG.sub("", _strip_comments(text))
    text = _IMAGE.sub(r"\1", text)
    text = _INLINE_LINK.sub(r"\1", text)
    text = _REF_LINK.sub(r"\1", text)
    text = _strip_underscores(text)
    return _ESCAPE.sub(r"\1", text)


def _keep(ch: str, dialect: Dialect) -> bool:
    if ch == "_":
        return dialect is not Dialect.KRAMDOWN
    if dialect is Dialect.KRAMDOWN:
        return ch.isascii() and ch.isalnum()
    return unicodedata.category(ch)[0] in "LMN"


def _map_chars(chunk: str, dialect: Dialect) -> str:
    out = []
    for ch in chunk:
        if ch == " " or ch == "-":
            out.append("-")
        elif _keep(ch, dialect):
            out.append(ch)
    return "".join(out)


def generate(text: str, dialect: Dialect | str = Dialect.GITHUB) -> str:
    """
    Compute the anchor a renderer would assign to a heading.

    Args:
        text: Raw heading text, inline markup allowed
        dialect: Which renderer's rules to follow

    Returns:
        The anchor string, possibly empty. Never raises on any input.

    Examples:
        >>> generate("Testing & Coverage")
        'testing--coverage'
        >>> generate("cbrown -> sbrown")
        'cbrown---sbrown'
        >>> generate("über_cool", Dialect.KRAMDOWN)
        'bercool'
    """
    dialect = Dialect.parse(dialect)
    text = strip_markup(text).lower()

    core = text.strip()
    if not core:
        return ""
    has_lead = text[0].isspace()
    has_trail = text[-1].isspace()

    out: list[str] = []
    pos = 0
    amp = core.find("&")
    while amp >= 0:
        # the ampersand takes the whitespace around it, back to the last match
        start = amp
        while start > pos and core[start - 1].isspace():
            start -= 1
        end = amp + 1
        while end < len(core) and core[end].isspace():
            end += 1
        out.append(_map_chars(core[pos:start], dialect))
        # an ampersand at the edge also swallows the stripped outer whitespace,
        # which gives back one of its two hyphens
        eats_lead = start == 0 and has_lead
        eats_trail = end == len(core) and has_trail
        if end - start > 1 or eats_lead or eats_trail:
            out.append("-" * (2 - eats_lead - eats_trail))
        pos = end
        amp = core.find("&", end)
    out.append(_map_chars(core[pos:], dialect))
    return "".join(out)
