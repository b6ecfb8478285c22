"""Heuristic classification of link targets."""

import re

from .model import Classification, LinkKind

EXTERNAL_SCHEMES = ("http:", "https:", "ftp:", "ftps:", "mailto:", "file:")

_DRIVE = re.compile(r"^[A-Za-z]:[\\/]")
_SCHEME_URL = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
_EXTENSION = re.compile(r"^[A-Za-z][A-Za-z0-9]{0,9}$")


def split_fragment(target: str) -> tuple[str, str | None]:
    """Split a raw link target at its first ``#``."""
    path, sep, fragment = target.partition("#")
    return path, (fragment if sep else None)


def classify(target: str) -> Classification:
    """
    Decide what a link target (the part before ``#``) points at.

    Order of checks:
    1. known URI scheme -> EXTERNAL
    2. empty -> AMBIGUOUS_LOCAL (plain ``#fragment`` link)
    3. ``/``, ``//``, drive letter or UNC prefix -> ABSOLUTE_PATH
    4. last segment looks like ``name.ext`` (name may be empty) -> CROSS_FILE
    5. no dot, or only a trailing dot -> AMBIGUOUS_LOCAL

    Anything else that still contains a dot is treated as CROSS_FILE.
    Extensionless file names land in AMBIGUOUS_LOCAL; that boundary is
    deliberate and matches what renderers historically did.

    Examples:
        >>> classify("guide.md").kind
        <LinkKind.CROSS_FILE: 'cross-file'>
        >>> classify("somefile").kind
        <LinkKind.AMBIGUOUS_LOCAL: 'ambiguous-local'>
    """
    stripped = target.strip()
    if stripped.lower().startswith(EXTERNAL_SCHEMES) or _SCHEME_URL.match(stripped):
        return Classification(LinkKind.EXTERNAL)
    if not stripped:
        return Classification(LinkKind.AMBIGUOUS_LOCAL)

    path = stripped.split("?", 1)[0]
    if path.startswith(("/", "\\\\")) or _DRIVE.match(path):
        return Classification(LinkKind.ABSOLUTE_PATH, path)

    segment = re.split(r"[\\/]", path)[-1]
    if "." in segment:
        _name, _, ext = segment.rpartition(".")
        if _EXTENSION.match(ext):
            return Classification(LinkKind.CROSS_FILE, path)
    if "." not in segment or segment.endswith("."):
        return Classification(LinkKind.AMBIGUOUS_LOCAL)
    return Classification(LinkKind.CROSS_FILE, path)
