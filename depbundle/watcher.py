"""
File system watcher for record exports.

Re-runs an ingestion cycle whenever the exported record files in a directory
change:
- Watchdog-based file monitoring
- Debounced change notification (editors and exporters write in bursts)
- Content hashing so touch-only saves do not trigger a cycle
"""

from __future__ import annotations

import hashlib
import logging
import time
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

DEPENDENCY_STEMS = ("dependencies", "calc_dependencies", "calcdependency")
RELATIONSHIP_STEMS = ("relationships", "relationship")
RECORD_EXTENSIONS = (".json", ".csv")


def find_record_files(directory: Path) -> tuple[Path | None, Path | None]:
    """Locate the dependency and relationship exports inside ``directory``."""

    def first(stems: tuple[str, ...]) -> Path | None:
        for stem in stems:
            for ext in RECORD_EXTENSIONS:
                candidate = directory / f"{stem}{ext}"
                if candidate.is_file():
                    return candidate
        return None

    return first(DEPENDENCY_STEMS), first(RELATIONSHIP_STEMS)


def compute_file_hash(path: Path) -> str | None:
    try:
        return hashlib.sha256(path.read_bytes()).hexdigest()
    except OSError:
        return None


class RecordFileHandler(FileSystemEventHandler):
    """
    Collects changes to record files and reports them once they settle.

    ``flush_pending`` is called from the watch loop; it invokes ``on_change``
    at most once per settled burst of events.
    """

    DEBOUNCE_SECONDS = 1.0

    def __init__(self, directory: Path, on_change: Callable[[list[Path]], None]):
        super().__init__()
        self.directory = directory
        self.on_change = on_change
        self.pending: dict[str, float] = {}  # path -> last event time
        self.file_hashes: dict[str, str | None] = {}

    def _is_relevant(self, path: str) -> bool:
        p = Path(path)
        if p.name.startswith("."):
            return False
        return p.suffix.lower() in RECORD_EXTENSIONS

    def _touch(self, path: str) -> None:
        if self._is_relevant(path):
            self.pending[path] = time.time()

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._touch(str(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._touch(str(event.src_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._touch(str(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._touch(str(event.src_path))
        self._touch(str(event.dest_path))

    def flush_pending(self, now: float | None = None) -> list[Path]:
        """Report files whose last event is older than the debounce window."""
        now = time.time() if now is None else now
        settled = [p for p, ts in self.pending.items() if now - ts >= self.DEBOUNCE_SECONDS]
        changed: list[Path] = []
        for path_str in settled:
            del self.pending[path_str]
            new_hash = compute_file_hash(Path(path_str))
            if self.file_hashes.get(path_str, "") != new_hash:
                self.file_hashes[path_str] = new_hash
                changed.append(Path(path_str))
        if changed:
            logger.debug("Record files changed: %s", ", ".join(p.name for p in changed))
            self.on_change(changed)
        return changed


def watch_directory(directory: Path, on_change: Callable[[list[Path]], None]) -> tuple[Observer, RecordFileHandler]:
    """Start watching ``directory``; the caller stops the returned observer."""
    handler = RecordFileHandler(directory, on_change)
    observer = Observer()
    observer.schedule(handler, str(directory), recursive=False)
    observer.start()
    return observer, handler


def run_watch_loop(directory: Path, on_change: Callable[[list[Path]], None], poll_seconds: float = 0.5) -> None:
    """Block, flushing settled changes, until interrupted."""
    observer, handler = watch_directory(directory, on_change)
    try:
        while True:
            time.sleep(poll_seconds)
            handler.flush_pending()
    except KeyboardInterrupt:
        pass
    finally:
        observer.stop()
        observer.join()
