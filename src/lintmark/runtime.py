"""Runtime wiring helper for the CLI."""

import logging
from dataclasses import dataclass
from pathlib import Path

from .adapters.fs_storage import FsStorage
from .config import LintmarkConfig, load_config
from .core.anchors import Dialect
from .errors import ConfigError
from .lint import Linter, default_rules, select_rules
from .workspace import WorkspaceIndex

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Container for all wired components."""
    root: Path
    storage: FsStorage
    workspace: WorkspaceIndex
    linter: Linter
    config: LintmarkConfig
    cache_dir: Path | None = None

    def save_cache(self) -> None:
        if self.cache_dir is not None:
            self.workspace.save_to_cache(self.cache_dir)


def build_runtime(
    root: Path | None = None,
    config_path: Path | None = None,
    dialect: str | None = None,
) -> Runtime:
    """Build and wire all components for a directory of Markdown files."""
    root = root or Path.cwd()
    config = load_config(config_path=config_path, root=root)

    # CLI flag wins over the config file
    if dialect is not None:
        try:
            config.anchors.dialect = Dialect.parse(dialect)
        except ValueError as e:
            raise ConfigError(str(e)) from e

    cache_dir = None
    workspace = None
    if config.cache.enabled:
        cache_dir = config.cache.dir if config.cache.dir.is_absolute() else root / config.cache.dir
        workspace = WorkspaceIndex.load_from_cache(cache_dir, config.anchors.dialect)
        if workspace is not None:
            logger.debug("Reusing %d cached documents from %s", len(workspace), cache_dir)
    if workspace is None:
        workspace = WorkspaceIndex(config.anchors.dialect)

    storage = FsStorage(root, include=config.lint.include, exclude=config.lint.exclude)
    rules = select_rules(default_rules(config.rule_options()), config.lint.disable)
    linter = Linter(
        rules,
        dialect=config.anchors.dialect,
        cross_file=config.lint.cross_file,
        max_workers=config.workers.threads,
        workspace=workspace,
    )

    return Runtime(
        root=root,
        storage=storage,
        workspace=workspace,
        linter=linter,
        config=config,
        cache_dir=cache_dir,
    )
