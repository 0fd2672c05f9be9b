"""Re-run injection when the manifest changes.

The watcher polls the manifest's directory for changes to the manifest file
(created, rewritten or removed) and restarts a debounce timer on each one, so a
bundler writing the manifest several times in a row triggers a single run.

The snapshot pairs the file's inode with its mtime and size. A same-size
rewrite inside one timestamp tick is only seen when the bundler replaces the
file (new inode) rather than rewriting it in place.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

from .config import Settings

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.1

Snapshot = tuple[int, int, int] | None


class DebounceTimer:
    """Run ``callback`` once ``delay`` seconds after the most recent ``schedule`` call."""

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self.delay = delay
        self._callback = callback
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._closed = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self) -> bool:
        """Replace any pending run with a new one. Returns False after shutdown."""
        with self._lock:
            if self._closed:
                return False
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.delay, self._fire)
            timer.daemon = True
            self._timer = timer
            timer.start()
            return True

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def shutdown(self) -> None:
        """Cancel the pending run and refuse any later ``schedule`` calls."""
        with self._lock:
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self) -> None:
        with self._lock:
            if self._timer is not threading.current_thread():
                # Superseded or cancelled between expiry and acquiring the lock.
                return
            self._timer = None
        self._callback()


class ManifestWatcher:
    """Poll for manifest changes and call ``on_change`` after the debounce interval."""

    def __init__(
        self,
        settings: Settings,
        on_change: Callable[[], object],
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.manifest_path = Path(settings.manifest).resolve()
        self.directory = self.manifest_path.parent
        self.poll_interval = poll_interval
        self._on_change = on_change
        self._timer = DebounceTimer(settings.debounce_seconds, self._run_cycle)
        self._run_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._snapshot = self._take_snapshot()

    @property
    def pending(self) -> bool:
        return self._timer.pending

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll_once(self) -> bool:
        """Compare the manifest against the last snapshot; schedule a run when it changed."""
        current = self._take_snapshot()
        if current == self._snapshot:
            return False
        self._snapshot = current
        logger.debug("Change detected for %s in %s.", self.manifest_path.name, self.directory)
        self._notify()
        return True

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            name="bundleinject-watcher",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        """Stop polling and drop any pending run."""
        self._stop_event.set()
        self._timer.shutdown()
        thread = self._thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None

    def run_forever(self) -> None:
        """Block until interrupted, polling in the background."""
        self.start()
        try:
            while not self._stop_event.wait(0.5):
                pass
        except KeyboardInterrupt:
            logger.debug("Watcher interrupted.")
        finally:
            self.stop()

    def __enter__(self) -> "ManifestWatcher":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _poll_loop(self) -> None:
        while not self._stop_event.wait(self.poll_interval):
            try:
                self.poll_once()
            except Exception:
                logger.exception("Failed to poll %s", self.manifest_path)

    def _notify(self) -> None:
        try:
            self._timer.schedule()
        except Exception:
            logger.exception("Failed to schedule update for %s", self.manifest_path)

    def _run_cycle(self) -> None:
        with self._run_lock:
            try:
                self._on_change()
            except Exception:
                logger.exception("Update for %s failed", self.manifest_path)

    def _take_snapshot(self) -> Snapshot:
        try:
            stat = self.manifest_path.stat()
        except FileNotFoundError:
            return None
        return (stat.st_ino, stat.st_mtime_ns, stat.st_size)
