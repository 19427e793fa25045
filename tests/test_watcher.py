from pathlib import Path

import pytest
from watchdog.events import FileModifiedEvent

from depbundle.watcher import RecordFileHandler, find_record_files


def test_find_record_files(export_dir: Path) -> None:
    deps, rels = find_record_files(export_dir)
    assert deps == export_dir / "dependencies.csv"
    assert rels == export_dir / "relationships.json"


def test_find_record_files_missing(tmp_path: Path) -> None:
    assert find_record_files(tmp_path) == (None, None)


def test_changes_are_debounced_and_hashed(tmp_path: Path) -> None:
    seen: list[list[Path]] = []
    handler = RecordFileHandler(tmp_path, seen.append)
    path = tmp_path / "dependencies.json"
    path.write_text("[]", encoding="utf-8")

    handler.on_modified(FileModifiedEvent(str(path)))
    ts = handler.pending[str(path)]

    # Still inside the debounce window
    assert handler.flush_pending(now=ts) == []
    assert seen == []

    assert handler.flush_pending(now=ts + handler.DEBOUNCE_SECONDS) == [path]
    assert seen == [[path]]

    # Touch without a content change
    handler.on_modified(FileModifiedEvent(str(path)))
    assert handler.flush_pending(now=ts + 10) == []
    assert len(seen) == 1

    path.write_text('[{"container": "Sales"}]', encoding="utf-8")
    handler.on_modified(FileModifiedEvent(str(path)))
    assert handler.flush_pending(now=ts + 20) == [path]
    assert len(seen) == 2


def test_irrelevant_files_ignored(tmp_path: Path) -> None:
    handler = RecordFileHandler(tmp_path, lambda paths: None)
    handler.on_modified(FileModifiedEvent(str(tmp_path / "notes.txt")))
    handler.on_modified(FileModifiedEvent(str(tmp_path / ".dependencies.json")))
    assert handler.pending == {}


class _Observer:
    def __init__(self):
        self.calls: list[str] = []

    def stop(self) -> None:
        self.calls.append("stop")

    def join(self) -> None:
        self.calls.append("join")


class _FailingHandler:
    def flush_pending(self) -> None:
        raise RuntimeError("callback failed")


def test_watch_loop_stops_observer_on_error(tmp_path: Path, monkeypatch) -> None:
    from depbundle import watcher

    observer = _Observer()
    monkeypatch.setattr(watcher, "watch_directory", lambda directory, on_change: (observer, _FailingHandler()))

    with pytest.raises(RuntimeError):
        watcher.run_watch_loop(tmp_path, lambda paths: None, poll_seconds=0)
    assert observer.calls == ["stop", "join"]
