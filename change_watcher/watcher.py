"""Debounced change watcher.

:class:`ChangeWatcher` is meant to be driven by a scheduler calling
:meth:`ChangeWatcher.process_events` on a steady cadence (about 20 times a
second).  Each call drains whatever notifications are queued without waiting
for new ones, keeps the set of watched directories current and fires the
reload callback once enough polls have passed since the previous reload.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from . import metrics
from .registry import DirectoryRegistry
from .watch_service import ClosedWatchServiceError, EventKind, WatchEvent, WatchService


logger = logging.getLogger(__name__)

# Polls that must pass after a reload before the next one may fire; three
# seconds at 20 polls per second.
DEFAULT_RELOAD_THRESHOLD = 20 * 3


@dataclass
class EngineState:
    """Mutable state of one watcher, guarded by the watcher lock."""

    recursive: bool
    file_extension: Optional[str] = None
    closed: bool = False
    ticks_since_last_reload: int = 0
    reload_pending: bool = False
    last_reload_at: float = 0.0


class ChangeWatcher:
    """Watch ``root`` and call ``callback`` when matching files are modified.

    Parameters
    ----------
    root:
        Directory to watch.  It must exist.
    callback:
        Zero-argument reload action.  It runs synchronously while the watcher
        lock is held and any exception it raises propagates to the caller of
        :meth:`process_events`.
    recursive:
        Watch every directory below ``root`` and pick up new ones as they are
        created.
    file_extension:
        Only consider paths ending in ``.<file_extension>``.
    reload_threshold:
        Number of polls that must exceed the count since the previous reload.
    min_interval:
        When given, debounce on elapsed seconds from ``clock`` instead of
        polls.
    service:
        :class:`WatchService` to use; the watcher takes ownership of it.
    """

    def __init__(
        self,
        root: str | Path,
        callback: Callable[[], None],
        recursive: bool = False,
        file_extension: Optional[str] = None,
        *,
        reload_threshold: int = DEFAULT_RELOAD_THRESHOLD,
        min_interval: Optional[float] = None,
        service: Optional[WatchService] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.root = Path(root)
        self.reload_threshold = reload_threshold
        self.min_interval = min_interval
        self._callback = callback
        self._clock = clock
        self._suffix = f".{file_extension}" if file_extension else None
        self._lock = threading.Lock()
        self._service = service if service is not None else WatchService()
        self.state = EngineState(recursive=recursive, file_extension=file_extension)
        self.state.last_reload_at = clock()
        self.registry = DirectoryRegistry(self._service)
        try:
            self.registry.initialize(self.root, recursive)
        except OSError:
            self._service.close()
            raise
        logger.info("Watching all files in %s", self.root)

    def process_events(self) -> None:
        """Drain queued notifications and fire the reload when it is due."""

        with self._lock:
            state = self.state
            if state.closed:
                return
            state.ticks_since_last_reload += 1
            with metrics.POLL_LATENCY.time():
                modified = self._drain()
                if modified is None:
                    return
                if modified:
                    state.reload_pending = True
                if not state.reload_pending:
                    return
                if self._due():
                    logger.info(
                        "Reloading after %d ticks", state.ticks_since_last_reload
                    )
                    state.ticks_since_last_reload = 0
                    state.reload_pending = False
                    state.last_reload_at = self._clock()
                    metrics.RELOADS_TOTAL.inc()
                    self._callback()
                elif modified:
                    metrics.RELOADS_SKIPPED_TOTAL.inc()
                    logger.info("Update skipped due to being too soon")

    def close(self) -> None:
        """Stop watching.  Safe to call more than once."""

        with self._lock:
            self.state.closed = True
            try:
                self._service.close()
            except OSError:
                logger.exception("Problem closing watcher")

    @property
    def closed(self) -> bool:
        return self.state.closed

    def __enter__(self) -> "ChangeWatcher":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    def _due(self) -> bool:
        if self.min_interval is not None:
            return self._clock() - self.state.last_reload_at > self.min_interval
        return self.state.ticks_since_last_reload > self.reload_threshold

    def _drain(self) -> Optional[bool]:
        """Process every signalled key.

        Returns whether a qualifying modification was seen, or ``None`` when
        the service turned out to be closed.
        """

        modified = False
        while True:
            try:
                key = self._service.poll()
            except ClosedWatchServiceError:
                logger.error(
                    "Watcher closed, if this error occurs outside of a reload then is an issue."
                )
                return None
            if key is None:
                return modified

            directory = self.registry.resolve(key)
            if directory is None:
                logger.info("Unexpected key triggered %r", key)
                continue

            for event in key.poll_events():
                if self._handle(directory, event):
                    modified = True

            if not key.reset():
                self.registry.unregister(key)

    def _handle(self, directory: Path, event: WatchEvent) -> bool:
        if event.kind is EventKind.OVERFLOW or event.name is None:
            return False

        child = directory / event.name
        if self._suffix is not None and not str(child).endswith(self._suffix):
            return False

        metrics.WATCH_EVENTS_TOTAL.labels(event.kind.value).inc()
        logger.info("Event %s on %s", event.kind.name, child)

        if event.kind is EventKind.CREATED:
            if self.state.recursive and child.is_dir():
                try:
                    self.registry.initialize(child, True)
                except OSError:
                    logger.error("Problem watching new folder %s", child)
        elif event.kind is EventKind.MODIFIED:
            logger.info(
                "File changed: %s (%d ticks since last reload)",
                child,
                self.state.ticks_since_last_reload,
            )
            return True
        return False


__all__ = ["ChangeWatcher", "DEFAULT_RELOAD_THRESHOLD", "EngineState"]
