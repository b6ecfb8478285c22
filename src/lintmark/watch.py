"""Watch mode for lintmark - file watcher with incremental re-linting."""

import json
import logging
import signal
import sys
import time
from pathlib import Path
from typing import Any, Callable

try:
    from watchdog.events import FileSystemEvent, FileSystemEventHandler
    from watchdog.observers import Observer

    WATCHDOG_AVAILABLE = True
except ImportError:
    WATCHDOG_AVAILABLE = False
    FileSystemEventHandler = object
    FileSystemEvent = Any

logger = logging.getLogger(__name__)


class DebounceHandler(FileSystemEventHandler):  # type: ignore[misc]
    """File system event handler with debouncing."""

    def __init__(
        self,
        wants: Callable[[Path], bool],
        on_batch: Callable[[set[Path], set[Path]], None],
        debounce_ms: int = 150,
    ):
        super().__init__()
        self.wants = wants
        self.on_batch = on_batch
        self.debounce_ms = debounce_ms

        # Pending changes by path
        self.added: set[Path] = set()
        self.modified: set[Path] = set()
        self.deleted: set[Path] = set()
        self.last_event_time = 0.0

    def _should_skip(self, path: Path) -> bool:
        name = path.name
        if name.startswith(".") or name.endswith("~") or name.endswith(".swp"):
            return True
        return not self.wants(path)

    def _record(self, bucket: set[Path], raw_path: Any) -> None:
        path = Path(str(raw_path))
        if self._should_skip(path):
            return
        bucket.add(path)
        self.last_event_time = time.time()

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._record(self.added, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._record(self.modified, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._record(self.deleted, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._record(self.deleted, event.src_path)
        self._record(self.added, event.dest_path)

    def check_and_flush(self) -> None:
        """Check if debounce period has elapsed and flush if so."""
        if not (self.added or self.modified or self.deleted):
            return
        elapsed = (time.time() - self.last_event_time) * 1000
        if elapsed >= self.debounce_ms:
            self.flush()

    def flush(self) -> None:
        """Process accumulated events."""
        if not (self.added or self.modified or self.deleted):
            return

        changed = (self.added | self.modified) - self.deleted
        deleted = set(self.deleted)
        # a file deleted then recreated within one window counts as changed
        recreated = deleted & self.added
        changed |= recreated
        deleted -= recreated

        self.added.clear()
        self.modified.clear()
        self.deleted.clear()

        if self.on_batch:
            self.on_batch(changed, deleted)


def relint_batch(rt: Any, changed: set[Path], deleted: set[Path]) -> dict[str, list]:
    """
    Apply a batch of file changes to the workspace and re-lint what they touch.

    Files that link to a changed or deleted file are re-checked too, since
    their cross-file fragments may have started or stopped resolving.

    Returns:
        Findings per re-linted file
    """
    storage = rt.storage
    workspace = rt.workspace
    gone = {p for p in changed if not p.exists()}
    changed = changed - gone
    deleted = deleted | gone
    touched: set[str] = set()

    for path in deleted:
        key = storage.key(path)
        workspace.remove_file(key)
        touched.add(key)

    sources = dict(storage.read_all(sorted(changed)))
    keys = rt.linter.index(sources)
    touched.update(keys)

    to_check = set(keys)
    for key in touched:
        to_check.update(workspace.get_dependents(key))
    return rt.linter.check(sorted(k for k in to_check if k in workspace))


def watch_directory(
    root: Path,
    rt: Any,
    debounce_ms: int = 150,
    quiet: bool = False,
    json_output: bool = False,
) -> int:
    """
    Watch a directory for changes and incrementally re-lint.

    Args:
        root: Directory to watch
        rt: Runtime with storage, workspace and linter
        debounce_ms: Debounce window in milliseconds
        quiet: Suppress output
        json_output: Output JSON events instead of human-readable

    Returns:
        Exit code
    """
    if not WATCHDOG_AVAILABLE:
        print(
            "Error: watchdog library not installed. Install with: pip install lintmark[watch]",
            file=sys.stderr,
        )
        return 1

    if not root.is_dir():
        print(f"Error: Directory not found: {root}", file=sys.stderr)
        return 1

    # Initial full lint so dependents are known
    paths = rt.storage.discover([root])
    sources = dict(rt.storage.read_all(paths))
    rt.linter.lint(sources)
    rt.workspace.retain_only(sources)
    if not quiet and not json_output:
        print(f"Indexed {len(sources)} files", flush=True)

    running = True

    def handle_batch(changed: set[Path], deleted: set[Path]) -> None:
        start_time = time.time()
        try:
            results = relint_batch(rt, changed, deleted)
            rt.save_cache()
        except Exception as e:
            logger.debug("Batch failed", exc_info=True)
            if json_output:
                print(json.dumps({"type": "error", "message": str(e)}), flush=True)
            else:
                print(f"Error: {e}", file=sys.stderr, flush=True)
            return

        duration_ms = int((time.time() - start_time) * 1000)
        if json_output:
            event = {
                "type": "batch",
                "changed": sorted(rt.storage.key(p) for p in changed),
                "deleted": sorted(rt.storage.key(p) for p in deleted),
                "findings": [f.to_dict() for fs in results.values() for f in fs],
                "duration_ms": duration_ms,
            }
            print(json.dumps(event), flush=True)
        elif not quiet:
            for findings in results.values():
                for f in findings:
                    print(f.format(), flush=True)
            count = sum(len(fs) for fs in results.values())
            print(f"Re-linted {len(results)} files: {count} findings ({duration_ms}ms)", flush=True)

    def signal_handler(signum: int, frame: Any) -> None:
        nonlocal running
        running = False
        if not quiet and not json_output:
            print("\nShutting down...", flush=True)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    handler = DebounceHandler(rt.storage.wants, handle_batch, debounce_ms)
    observer = Observer()
    observer.schedule(handler, str(root), recursive=True)

    if not quiet and not json_output:
        print(f"Watching {root} (debounce: {debounce_ms}ms)", flush=True)
        print("Press Ctrl+C to stop", flush=True)

    observer.start()
    try:
        while running:
            time.sleep(0.1)
            handler.check_and_flush()
    finally:
        handler.flush()
        observer.stop()
        observer.join()

    if not quiet and not json_output:
        print("Watch stopped", flush=True)
    return 0
