"""Configuration loader for lintmark.toml."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from .core.anchors import Dialect
from .core.utils import normalize_rule_name
from .errors import ConfigError

CONFIG_NAME = "lintmark.toml"
DEFAULT_INCLUDE = ["**/*.md", "**/*.markdown"]


@dataclass
class AnchorConfig:
    """Heading anchor generation."""
    dialect: Dialect = Dialect.GITHUB


@dataclass
class LintConfig:
    """Rule selection and file discovery."""
    disable: list[str] = field(default_factory=list)
    cross_file: bool = True
    include: list[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE))
    exclude: list[str] = field(default_factory=list)


@dataclass
class FootnoteRuleConfig:
    """Options for MD063 (duplicate footnotes)."""
    check_definitions: bool = True
    check_references: bool = False


@dataclass
class CacheConfig:
    """Workspace index cache."""
    enabled: bool = False
    dir: Path = Path(".lintmark_cache")


@dataclass
class WorkerConfig:
    """Indexing thread pool. 0 lets the executor pick its default size."""
    threads: int = 0


@dataclass
class LintmarkConfig:
    """Complete lintmark configuration."""
    anchors: AnchorConfig = field(default_factory=AnchorConfig)
    lint: LintConfig = field(default_factory=LintConfig)
    footnotes: FootnoteRuleConfig = field(default_factory=FootnoteRuleConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    workers: WorkerConfig = field(default_factory=WorkerConfig)
    source: Path | None = None

    def rule_options(self) -> dict[str, dict[str, Any]]:
        return {
            "MD063": {
                "check_definitions": self.footnotes.check_definitions,
                "check_references": self.footnotes.check_references,
            }
        }


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e


def _expect(value: Any, kind: type | tuple[type, ...], name: str) -> Any:
    if not isinstance(value, kind):
        raise ConfigError(f"'{name}' has the wrong type ({type(value).__name__})")
    return value


def _string_list(value: Any, name: str) -> list[str]:
    _expect(value, list, name)
    for item in value:
        _expect(item, str, name)
    return list(value)


def find_config(config_path: Path | None = None, root: Path | None = None) -> tuple[Path | None, dict[str, Any]]:
    """
    Locate and read the configuration.

    Search order:
    1. config_path (if provided; must exist)
    2. cwd/lintmark.toml
    3. root/lintmark.toml
    4. cwd/pyproject.toml, when it has a [tool.lintmark] table

    Returns:
        (path, table) with an empty table when nothing was found
    """
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        data = _read_toml(config_path)
        if config_path.name == "pyproject.toml":
            data = data.get("tool", {}).get("lintmark", {})
        return config_path, data

    search_paths = [Path.cwd() / CONFIG_NAME]
    if root is not None:
        search_paths.append(root / CONFIG_NAME)
    for path in search_paths:
        if path.exists():
            return path, _read_toml(path)

    pyproject = Path.cwd() / "pyproject.toml"
    if pyproject.exists():
        table = _read_toml(pyproject).get("tool", {}).get("lintmark")
        if table is not None:
            return pyproject, table
    return None, {}


def load_config(config_path: Path | None = None, root: Path | None = None) -> LintmarkConfig:
    """
    Load configuration from lintmark.toml.

    Args:
        config_path: Explicit path to config file
        root: Root of the files being linted, for fallback search

    Returns:
        LintmarkConfig with resolved settings

    Raises:
        ConfigError: if the file cannot be parsed or holds invalid values
    """
    source, toml_data = find_config(config_path, root)

    # Parse anchors config
    anchors_data = _expect(toml_data.get("anchors", {}), dict, "anchors")
    try:
        dialect = Dialect.parse(_expect(anchors_data.get("dialect", "github"), str, "anchors.dialect"))
    except ValueError as e:
        raise ConfigError(str(e)) from e
    anchor_config = AnchorConfig(dialect=dialect)

    # Parse lint config
    lint_data = _expect(toml_data.get("lint", {}), dict, "lint")
    lint_config = LintConfig(
        disable=[normalize_rule_name(r) for r in _string_list(lint_data.get("disable", []), "lint.disable")],
        cross_file=_expect(lint_data.get("cross_file", True), bool, "lint.cross_file"),
        include=_string_list(lint_data.get("include", DEFAULT_INCLUDE), "lint.include"),
        exclude=_string_list(lint_data.get("exclude", []), "lint.exclude"),
    )

    # Parse per-rule options; aliases are accepted as table names
    rules_data = _expect(toml_data.get("rules", {}), dict, "rules")
    footnote_data: dict[str, Any] = {}
    for name, table in rules_data.items():
        if normalize_rule_name(name) == "MD063":
            footnote_data = _expect(table, dict, f"rules.{name}")
    footnote_config = FootnoteRuleConfig(
        check_definitions=_expect(
            footnote_data.get("check_definitions", True), bool, "rules.MD063.check_definitions"
        ),
        check_references=_expect(
            footnote_data.get("check_references", False), bool, "rules.MD063.check_references"
        ),
    )

    # Parse cache config
    cache_data = _expect(toml_data.get("cache", {}), dict, "cache")
    cache_config = CacheConfig(
        enabled=_expect(cache_data.get("enabled", False), bool, "cache.enabled"),
        dir=Path(_expect(cache_data.get("dir", ".lintmark_cache"), str, "cache.dir")),
    )

    # Parse worker config
    workers_data = _expect(toml_data.get("workers", {}), dict, "workers")
    threads = _expect(workers_data.get("threads", 0), int, "workers.threads")
    if threads < 0:
        raise ConfigError("'workers.threads' must not be negative")

    return LintmarkConfig(
        anchors=anchor_config,
        lint=lint_config,
        footnotes=footnote_config,
        cache=cache_config,
        workers=WorkerConfig(threads=threads),
        source=source,
    )
