"""Watch mode for quoth - keeps the reference index current as files change."""

import logging
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Any, Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .core.errors import FileNotFound, QuothError, UnreadableFile
from .core.index import ReferenceIndex

LOGGER = logging.getLogger(__name__)

BatchCallback = Callable[[set[str], set[str], list[tuple[str, str]]], None]


class DebounceHandler(FileSystemEventHandler):
    """File system event handler with debouncing."""

    def __init__(self, vault_path: Path, on_batch: BatchCallback, debounce_ms: int = 150):
        super().__init__()
        self.vault_path = vault_path
        self.on_batch = on_batch
        self.debounce_ms = debounce_ms

        # Pending changes by vault path, shared with the observer thread
        self.lock = threading.Lock()
        self.changed: set[str] = set()
        self.deleted: set[str] = set()
        self.moved: list[tuple[str, str]] = []
        self.last_event_time = 0.0

    def _should_skip(self, path: Path) -> bool:
        """Check if file should be skipped."""
        name = path.name

        # Skip hidden files
        if name.startswith("."):
            return True

        # Skip temp/swap files
        if name.endswith("~") or name.endswith(".swp") or name.startswith(".#"):
            return True

        # Only process .md files
        if not name.endswith(".md"):
            return True

        return False

    def _vault_path(self, raw: Any) -> str | None:
        path = Path(str(raw))
        if self._should_skip(path):
            return None
        try:
            rel = path.relative_to(self.vault_path)
        except ValueError:
            return None
        if any(part.startswith(".") for part in rel.parts):
            return None
        return rel.as_posix()

    def _touch(self) -> None:
        self.last_event_time = time.time()

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = self._vault_path(event.src_path)
        if path:
            with self.lock:
                self.deleted.discard(path)
                self.changed.add(path)
                self._touch()

    on_modified = on_created

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = self._vault_path(event.src_path)
        if path:
            with self.lock:
                self.changed.discard(path)
                self.deleted.add(path)
                self._touch()

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        old = self._vault_path(event.src_path)
        new = self._vault_path(event.dest_path)
        if not (old or new):
            return
        with self.lock:
            if old and new:
                self.moved.append((old, new))
            elif new:
                # editors that save through a temporary file
                self.changed.add(new)
            else:
                self.deleted.add(old)
            self._touch()

    def pending(self) -> bool:
        return bool(self.changed or self.deleted or self.moved)

    def check_and_flush(self) -> None:
        """Check if debounce period has elapsed and flush if so."""
        if not self.pending():
            return
        elapsed = (time.time() - self.last_event_time) * 1000
        if elapsed >= self.debounce_ms:
            self.flush()

    def flush(self) -> None:
        """Process accumulated events."""
        with self.lock:
            if not self.pending():
                return
            changed, deleted, moved = self.changed, self.deleted, self.moved
            self.changed, self.deleted, self.moved = set(), set(), []
        if self.on_batch:
            self.on_batch(changed, deleted, moved)


def apply_batch(
    index: ReferenceIndex, changed: set[str], deleted: set[str], moved: list[tuple[str, str]]
) -> dict[str, int]:
    """Feed one debounced batch of events into the index."""
    counts = {"renamed": 0, "modified": 0, "deleted": 0}
    for old, new in moved:
        index.on_rename(old, new)
        counts["renamed"] += 1
    for path in sorted(changed):
        try:
            index.on_modify(path)
        except FileNotFound:
            # gone again before the batch was flushed
            index.on_delete(path)
            counts["deleted"] += 1
            continue
        except UnreadableFile as e:
            LOGGER.warning("skipping %s: %s", path, e)
            index.on_delete(path)
            continue
        counts["modified"] += 1
    for path in sorted(deleted):
        index.on_delete(path)
        counts["deleted"] += 1
    return counts


def watch_vault(vault_path: Path, index: ReferenceIndex, debounce_ms: int = 150, quiet: bool = False) -> int:
    """
    Watch vault directory for changes and keep the reference index current.

    Args:
        vault_path: Path to vault directory
        index: ReferenceIndex to update
        debounce_ms: Debounce window in milliseconds
        quiet: Suppress output

    Returns:
        Exit code
    """
    if not vault_path.exists():
        print(f"Error: Vault not found: {vault_path}", file=sys.stderr)
        return 1

    if not index.entries:
        if not quiet:
            print("Index is empty, running initial reindex...")
        index.rebuild()

    running = True

    def handle_batch(changed: set[str], deleted: set[str], moved: list[tuple[str, str]]) -> None:
        start_time = time.time()
        try:
            counts = apply_batch(index, changed, deleted, moved)
        except (OSError, QuothError) as e:
            LOGGER.warning("batch failed: %s", e)
            print(f"Error: {e}", file=sys.stderr, flush=True)
            return
        duration_ms = int((time.time() - start_time) * 1000)
        if not quiet:
            print(
                f"Indexed: ~{counts['modified']} -{counts['deleted']} >{counts['renamed']} ({duration_ms}ms)",
                flush=True,
            )

    def signal_handler(signum: int, frame: Any) -> None:
        nonlocal running
        running = False
        if not quiet:
            print("\nShutting down...", flush=True)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    handler = DebounceHandler(vault_path.resolve(), handle_batch, debounce_ms)
    observer = Observer()
    observer.schedule(handler, str(vault_path.resolve()), recursive=True)

    if not quiet:
        print(f"Watching {vault_path} (debounce: {debounce_ms}ms)", flush=True)
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

    if not quiet:
        print("Watch stopped", flush=True)
    return 0
