"""Exceptions raised by lintmark.

Malformed Markdown is never an error: the indexer recovers locally and keeps
going. These cover the surroundings (configuration, cache files).
"""


class LintmarkError(Exception):
    """Base class for lintmark errors."""


class ConfigError(LintmarkError):
    """Invalid configuration file or value."""


class CacheError(LintmarkError):
    """Workspace cache file that cannot be used."""
