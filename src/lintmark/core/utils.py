"""Utility functions for lintmark."""

import hashlib
import posixpath
from urllib.parse import unquote

# markdownlint-style aliases for the rules lintmark implements
RULE_ALIASES = {
    "LINK-FRAGMENTS": "MD051",
    "DUPLICATE-FOOTNOTES": "MD063",
}


def normalize_rule_name(name: str) -> str:
    """
    Canonicalize a rule name as written in config or inline comments.

    Examples:
        >>> normalize_rule_name("md051")
        'MD051'
        >>> normalize_rule_name("link-fragments")
        'MD051'
        >>> normalize_rule_name("*")
        '*'
    """
    key = name.strip().upper()
    return RULE_ALIASES.get(key, key)


def decode_fragment(fragment: str) -> str:
    """Percent-decode a link fragment; undecodable escapes are kept verbatim."""
    if "%" not in fragment:
        return fragment
    try:
        return unquote(fragment, errors="strict")
    except UnicodeDecodeError:
        return fragment


def content_hash(text: str) -> str:
    """SHA-256 hex digest of a document, used for staleness checks."""
    return hashlib.sha256(text.encode("utf-8", errors="surrogatepass")).hexdigest()


def normalize_path(path: str) -> str:
    """
    Resolve ``.`` and ``..`` segments and unify separators.

    A ``..`` that would climb above the first segment is dropped.

    Examples:
        >>> normalize_path("docs/./guide/../intro.md")
        'docs/intro.md'
        >>> normalize_path("docs\\\\intro.md")
        'docs/intro.md'
    """
    path = path.replace("\\", "/")
    absolute = path.startswith("/")
    parts: list[str] = []
    for seg in path.split("/"):
        if seg in ("", "."):
            continue
        if seg == "..":
            if parts:
                parts.pop()
            continue
        parts.append(seg)
    joined = "/".join(parts)
    return "/" + joined if absolute else joined


def resolve_relative(source_path: str, target: str) -> str:
    """Resolve ``target`` against the directory of ``source_path``."""
    target = target.replace("\\", "/")
    if target.startswith("/"):
        return normalize_path(target)
    source_dir = posixpath.dirname(source_path.replace("\\", "/"))
    return normalize_path(posixpath.join(source_dir, target) if source_dir else target)
