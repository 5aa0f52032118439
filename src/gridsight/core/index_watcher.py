"""Change notification for the dynamic icon index file.

The game rewrites its icon cache index while running. A watchdog observer
watches the index's directory; events for the index file are filtered by
name and only a change of the file size fires the callback. The observer
dispatches events on its single dispatcher thread, so two callbacks never
overlap.
"""
import logging
from pathlib import Path
from typing import Callable, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class IndexFileHandler(FileSystemEventHandler):
    """Forward events that touch the index file to the watcher."""

    def __init__(self, watcher: "IndexWatcher"):
        self.watcher = watcher

    def _handle(self, event: FileSystemEvent, path) -> None:
        if event.is_directory or Path(path).name != self.watcher.path.name:
            return
        try:
            self.watcher.poll()
        except Exception as e:
            logger.warning("Index watcher callback failed: %s", e)

    def on_modified(self, event):
        self._handle(event, event.src_path)

    def on_created(self, event):
        self._handle(event, event.src_path)

    def on_moved(self, event):
        # Writers that replace the file atomically show up as a move onto it
        self._handle(event, event.dest_path)


class IndexWatcher:
    """Invoke on_change whenever the index file's size differs from the last seen size."""

    def __init__(
        self,
        path: Union[str, Path],
        on_change: Callable[[], None],
        interval: float = 1.0,
    ):
        self.path = Path(path)
        self.on_change = on_change
        self.interval = interval
        self.handler = IndexFileHandler(self)
        self._observer: Optional[Observer] = None
        self._last_size: Optional[int] = self._current_size()

    def start(self) -> None:
        """Begin watching; raises FileNotFoundError when the index directory is missing."""
        directory = self.path.parent
        if not directory.is_dir():
            raise FileNotFoundError(f"Index directory not found: {directory}")
        observer = Observer(timeout=self.interval)
        observer.name = "IndexWatcher"
        observer.schedule(self.handler, str(directory), recursive=False)
        observer.start()
        self._observer = observer
        logger.info("Index watcher started for %s", self.path)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the observer and wait for its threads."""
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout)
        logger.info("Index watcher stopped")

    def is_alive(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def poll(self) -> bool:
        """Check the file once; returns True when a change was dispatched."""
        size = self._current_size()
        if size is None or size == self._last_size:
            return False
        logger.debug("Index %s changed size: %s -> %s", self.path, self._last_size, size)
        self._last_size = size
        self.on_change()
        return True

    def _current_size(self) -> Optional[int]:
        try:
            return self.path.stat().st_size
        except OSError:
            return None
