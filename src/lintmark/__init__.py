"""Lintmark - structural Markdown linter."""

__version__ = "0.3.0"

from .adapters.document_parser import index_document
from .core.anchors import Dialect, generate
from .lint import Finding, Linter, lint_document, lint_workspace
from .workspace import CrossFileResolver, WorkspaceIndex

__all__ = [
    "__version__",
    "index_document",
    "generate",
    "Dialect",
    "WorkspaceIndex",
    "CrossFileResolver",
    "Finding",
    "Linter",
    "lint_document",
    "lint_workspace",
]
