"""
Filesystem watcher.

Watches the served tree with watchdog and turns bursts of file writes into
single change notifications. Creating a file doesn't count as a write, even
when it gets its first content in the same burst. watchdog delivers events on its own observer
thread; they are queued to a dedicated debounce thread so nothing here ever
runs on the event loop. The ``notify`` callable is invoked from that thread
and must be thread safe, e.g. ``functools.partial(loop.call_soon_threadsafe,
broadcaster.publish)``.
"""

import logging
import queue
import threading
import time
from pathlib import Path

from watchdog.events import FileModifiedEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.2

_STOP = object()

CREATED = "created"
MODIFIED = "modified"


class WatchError(RuntimeError):
    pass


class _WriteEventHandler(FileSystemEventHandler):
    def __init__(self, events):
        super().__init__()
        self._events = events

    # Creations are queued only so the writes that come with them can be
    # dropped; delete and move events are ignored.
    def on_created(self, event):
        if not event.is_directory:
            self._events.put((CREATED, event.src_path))

    def on_modified(self, event):
        if event.is_directory or not isinstance(event, FileModifiedEvent):
            return
        self._events.put((MODIFIED, event.src_path))


class FileSystemWatcher:
    def __init__(self, root, notify, debounce=DEFAULT_DEBOUNCE):
        self.root = Path(root)
        self.notify = notify
        self.debounce = debounce
        self._events = queue.Queue()
        self._observer = None
        self._thread = None

    def start(self):
        """Start watching. Raises WatchError if the watch can't be set up."""
        if not self.root.is_dir():
            raise WatchError(f"Cannot watch '{self.root}': not a directory")

        observer = Observer()
        try:
            observer.schedule(_WriteEventHandler(self._events), str(self.root), recursive=True)
            observer.start()
        except OSError as e:
            raise WatchError(f"Cannot watch '{self.root}': {e}") from e
        self._observer = observer

        self._thread = threading.Thread(target=self._run, name="webhere-watch", daemon=True)
        self._thread.start()
        logger.debug("Watching %s", self.root)

    def stop(self):
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        if self._thread is not None:
            self._events.put(_STOP)
            self._thread.join()
            self._thread = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc_info):
        self.stop()

    def _run(self):
        while True:
            item = self._events.get()
            if item is _STOP:
                return

            # Everything arriving within the window joins this burst.
            burst = [item]
            deadline = time.monotonic() + self.debounce
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                try:
                    item = self._events.get(timeout=remaining)
                except queue.Empty:
                    break
                if item is _STOP:
                    return
                burst.append(item)

            # Writes to files created in the same burst are part of the creation.
            created = {path for kind, path in burst if kind == CREATED}
            written = {path for kind, path in burst if kind == MODIFIED} - created
            if not written:
                logger.debug("Ignoring %d created file(s) under %s", len(created), self.root)
                continue

            logger.debug("%d file(s) written under %s", len(written), self.root)
            try:
                self.notify()
            except Exception:
                logger.exception("Change notification failed")
