"""
Tests for the filesystem watcher.

These use the real watchdog observer on a temporary directory, so waits are
generous compared to the 200 ms debounce window.
"""

import queue
import threading
import time

import pytest
from watchdog.events import (
    DirCreatedEvent,
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from webhere.watcher import (
    CREATED,
    DEFAULT_DEBOUNCE,
    MODIFIED,
    FileSystemWatcher,
    WatchError,
    _WriteEventHandler,
)

SETTLE = 0.6


class Counter:
    """Thread safe notify callback."""

    def __init__(self, fail_first=False):
        self.count = 0
        self.fail_first = fail_first
        self._cond = threading.Condition()

    def __call__(self):
        with self._cond:
            self.count += 1
            self._cond.notify_all()
            if self.fail_first and self.count == 1:
                raise RuntimeError("event loop is closed")

    def wait_for(self, count, timeout=3.0):
        with self._cond:
            return self._cond.wait_for(lambda: self.count >= count, timeout)


@pytest.fixture
def watched(tmp_path):
    for name in ["a.txt", "b.txt", "c.html"]:
        (tmp_path / name).write_text("initial", encoding="utf-8")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "deep.css").write_text("initial", encoding="utf-8")
    return tmp_path


def test_default_debounce():
    assert DEFAULT_DEBOUNCE == 0.2


def test_burst_of_writes_is_one_signal(watched):
    counter = Counter()
    with FileSystemWatcher(watched, counter):
        for _ in range(3):
            for name in ["a.txt", "b.txt", "c.html"]:
                (watched / name).write_text(f"changed {name}", encoding="utf-8")

        assert counter.wait_for(1)
        time.sleep(SETTLE)
    assert counter.count == 1


def test_nested_write_is_seen(watched):
    counter = Counter()
    with FileSystemWatcher(watched, counter):
        (watched / "nested" / "deep.css").write_text("body {}", encoding="utf-8")
        assert counter.wait_for(1)


def test_separate_bursts_are_separate_signals(watched):
    counter = Counter()
    with FileSystemWatcher(watched, counter):
        (watched / "a.txt").write_text("one", encoding="utf-8")
        assert counter.wait_for(1)
        time.sleep(SETTLE)

        (watched / "b.txt").write_text("two", encoding="utf-8")
        assert counter.wait_for(2)


def test_no_signal_without_writes(watched):
    counter = Counter()
    with FileSystemWatcher(watched, counter):
        time.sleep(SETTLE)
    assert counter.count == 0


def test_new_file_is_not_a_signal(tmp_path):
    counter = Counter()
    with FileSystemWatcher(tmp_path, counter):
        (tmp_path / "new.txt").write_text("fresh", encoding="utf-8")
        time.sleep(SETTLE)
    assert counter.count == 0


def test_later_write_to_new_file_is_a_signal(tmp_path):
    counter = Counter()
    with FileSystemWatcher(tmp_path, counter):
        (tmp_path / "new.txt").write_text("fresh", encoding="utf-8")
        time.sleep(SETTLE)
        assert counter.count == 0

        (tmp_path / "new.txt").write_text("edited", encoding="utf-8")
        assert counter.wait_for(1)


def test_new_file_alongside_write_is_one_signal(watched):
    counter = Counter()
    with FileSystemWatcher(watched, counter):
        (watched / "new.txt").write_text("fresh", encoding="utf-8")
        (watched / "a.txt").write_text("changed", encoding="utf-8")
        assert counter.wait_for(1)
        time.sleep(SETTLE)
    assert counter.count == 1


def test_burst_rules_without_filesystem(tmp_path):
    counter = Counter()
    with FileSystemWatcher(tmp_path, counter) as watcher:
        watcher._events.put((CREATED, "/site/new.txt"))
        watcher._events.put((MODIFIED, "/site/new.txt"))
        time.sleep(SETTLE)
        assert counter.count == 0

        watcher._events.put((MODIFIED, "/site/old.txt"))
        watcher._events.put((MODIFIED, "/site/old.txt"))
        assert counter.wait_for(1)
        time.sleep(SETTLE)
    assert counter.count == 1


def test_notify_failure_does_not_stop_watching(watched, caplog):
    counter = Counter(fail_first=True)
    with FileSystemWatcher(watched, counter):
        (watched / "a.txt").write_text("one", encoding="utf-8")
        assert counter.wait_for(1)
        time.sleep(SETTLE)

        (watched / "a.txt").write_text("two", encoding="utf-8")
        assert counter.wait_for(2)
    assert "Change notification failed" in caplog.text


def test_missing_root_is_fatal(tmp_path):
    watcher = FileSystemWatcher(tmp_path / "missing", Counter())
    with pytest.raises(WatchError):
        watcher.start()


def test_file_root_is_fatal(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("", encoding="utf-8")
    with pytest.raises(WatchError):
        FileSystemWatcher(target, Counter()).start()


def test_stop_is_idempotent(watched):
    watcher = FileSystemWatcher(watched, Counter())
    watcher.start()
    watcher.stop()
    watcher.stop()


class TestWriteEventHandler:
    """Only file writes are queued."""

    def dispatch(self, event):
        events = queue.Queue()
        _WriteEventHandler(events).dispatch(event)
        return [events.get_nowait() for _ in range(events.qsize())]

    def test_file_modified(self):
        assert self.dispatch(FileModifiedEvent("/site/a.txt")) == [(MODIFIED, "/site/a.txt")]

    def test_directory_modified_is_ignored(self):
        assert self.dispatch(DirModifiedEvent("/site")) == []

    def test_file_created_is_recorded(self):
        assert self.dispatch(FileCreatedEvent("/site/new.txt")) == [(CREATED, "/site/new.txt")]

    def test_directory_created_is_ignored(self):
        assert self.dispatch(DirCreatedEvent("/site/new")) == []

    def test_deleted_is_ignored(self):
        assert self.dispatch(FileDeletedEvent("/site/a.txt")) == []

    def test_moved_is_ignored(self):
        assert self.dispatch(FileMovedEvent("/site/a.txt", "/site/b.txt")) == []
