"""Per-directory change notifications built on watchdog observers.

Every registered directory gets a :class:`WatchKey`.  Observer threads append
events to the key and signal it; consumers pick signalled keys with
:meth:`WatchService.poll`, drain them with :meth:`WatchKey.poll_events` and
re-arm them with :meth:`WatchKey.reset`.  Nothing here ever blocks waiting for
new events.
"""

from __future__ import annotations

import errno
import os
import stat
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from queue import Empty, SimpleQueue
from typing import Any, Callable, Dict, List, Optional, Tuple

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver


# Events held per key before the key records an overflow and drops the rest.
MAX_EVENTS_PER_KEY = 512


class EventKind(str, Enum):
    """Kinds of notifications delivered for a watched directory."""

    CREATED = "created"
    DELETED = "deleted"
    MODIFIED = "modified"
    OVERFLOW = "overflow"


@dataclass(frozen=True)
class WatchEvent:
    """A single notification; ``name`` is relative to the key's directory."""

    kind: EventKind
    name: Optional[Path] = None


class ClosedWatchServiceError(RuntimeError):
    """Raised when a closed :class:`WatchService` is used."""


class _KeyHandler(FileSystemEventHandler):
    """Translate watchdog events for one directory into :class:`WatchEvent`."""

    def __init__(self, key: "WatchKey") -> None:
        super().__init__()
        self._key = key

    def on_created(self, event: Any) -> None:
        self._key._child_event(EventKind.CREATED, event.src_path)

    def on_modified(self, event: Any) -> None:
        # a directory changes whenever an entry inside it does
        if event.is_directory:
            return
        self._key._child_event(EventKind.MODIFIED, event.src_path)

    def on_deleted(self, event: Any) -> None:
        if self._key._is_self(event.src_path):
            self._key._invalidate()
            return
        self._key._child_event(EventKind.DELETED, event.src_path)

    def on_moved(self, event: Any) -> None:
        if self._key._is_self(event.src_path):
            self._key._invalidate()
            return
        self._key._child_event(EventKind.DELETED, event.src_path)
        self._key._child_event(EventKind.CREATED, event.dest_path)


class WatchKey:
    """Subscription handle for exactly one directory."""

    def __init__(self, service: "WatchService", path: Path) -> None:
        self._service = service
        self.path = path
        self.handler = _KeyHandler(self)
        self.watch: Any = None
        self._events: List[WatchEvent] = []
        self._lock = threading.Lock()
        self._signalled = False
        self._valid = True

    def __repr__(self) -> str:
        return f"WatchKey({str(self.path)!r}, valid={self._valid})"

    @property
    def valid(self) -> bool:
        return self._valid

    def poll_events(self) -> List[WatchEvent]:
        """Return and clear the events queued on this key."""

        with self._lock:
            events, self._events = self._events, []
        return events

    def reset(self) -> bool:
        """Re-arm the key.

        Returns ``False`` when the key is no longer valid; the caller should
        then stop tracking it.
        """

        with self._lock:
            valid = self._valid
            if valid:
                if self._events:
                    self._service._enqueue(self)
                else:
                    self._signalled = False
        if not valid:
            self._service._discard(self)
        return valid

    # ------------------------------------------------------------------
    # Observer side
    def _is_self(self, src_path: Any) -> bool:
        return os.path.abspath(os.fsdecode(src_path)) == os.path.abspath(self.path)

    def _child_event(self, kind: EventKind, src_path: Any) -> None:
        rel = os.path.relpath(os.fsdecode(src_path), os.path.abspath(self.path))
        if rel in (os.curdir, os.pardir) or rel.startswith(os.pardir + os.sep):
            return
        self._post(WatchEvent(kind, Path(rel)))

    def _post(self, event: WatchEvent) -> None:
        with self._lock:
            if not self._valid:
                return
            if len(self._events) >= MAX_EVENTS_PER_KEY:
                if self._events[-1].kind is EventKind.OVERFLOW:
                    return
                event = WatchEvent(EventKind.OVERFLOW)
            elif self._events and self._events[-1] == event:
                return
            self._events.append(event)
            self._signal()

    def _invalidate(self) -> None:
        with self._lock:
            if not self._valid:
                return
            self._valid = False
            self._signal()

    def _signal(self) -> None:
        # caller holds self._lock
        if not self._signalled:
            self._signalled = True
            self._service._enqueue(self)


class WatchService:
    """Hand out :class:`WatchKey` objects and queue them as they are signalled.

    Parameters
    ----------
    polling:
        Use watchdog's :class:`PollingObserver` instead of the native
        platform observer.
    observer_factory:
        Callable returning an observer; overrides ``polling``.
    """

    def __init__(
        self,
        *,
        polling: bool = False,
        observer_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        factory = observer_factory or (PollingObserver if polling else Observer)
        self._observer = factory()
        self._ready: "SimpleQueue[WatchKey]" = SimpleQueue()
        self._keys: Dict[Tuple[int, int], WatchKey] = {}
        self._lock = threading.Lock()
        self._closed = False
        self._observer.start()

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, path: str | Path) -> WatchKey:
        """Watch ``path`` for created, deleted and modified entries.

        Registering the same directory again returns the existing key.  When
        the directory is now reachable under a different path the key is
        remapped to it.
        """

        path = Path(path)
        with self._lock:
            self._check_open()
            st = os.stat(path)
            if not stat.S_ISDIR(st.st_mode):
                raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), str(path))
            ident = (st.st_dev, st.st_ino)
            self._drop_stale(path, ident)
            key = self._keys.get(ident)
            if key is not None and key.valid:
                if key.path != path:
                    self._unschedule(key)
                    key.path = path
                    key.watch = self._observer.schedule(key.handler, str(path), recursive=False)
                return key
            if key is not None:
                self._unschedule(key)
            key = WatchKey(self, path)
            key.watch = self._observer.schedule(key.handler, str(path), recursive=False)
            self._keys[ident] = key
            return key

    def poll(self) -> Optional[WatchKey]:
        """Return the next signalled key, or ``None`` when nothing is queued."""

        self._check_open()
        try:
            return self._ready.get_nowait()
        except Empty:
            return None

    def close(self) -> None:
        """Invalidate all keys and stop the observer."""

        with self._lock:
            if self._closed:
                return
            self._closed = True
            keys = list(self._keys.values())
            self._keys.clear()
        for key in keys:
            with key._lock:
                key._valid = False
                key._events.clear()
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join()

    def __enter__(self) -> "WatchService":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    def _check_open(self) -> None:
        if self._closed:
            raise ClosedWatchServiceError("watch service is closed")

    def _enqueue(self, key: WatchKey) -> None:
        self._ready.put(key)

    def _discard(self, key: WatchKey) -> None:
        with self._lock:
            if self._closed:
                return
            for ident, known in list(self._keys.items()):
                if known is key:
                    del self._keys[ident]
            self._unschedule(key)

    def _drop_stale(self, path: Path, ident: Tuple[int, int]) -> None:
        # A different directory now lives at ``path``; the old key can never
        # fire again, so invalidate it before its watch is replaced.
        for other, key in list(self._keys.items()):
            if other == ident or key.path != path:
                continue
            del self._keys[other]
            with key._lock:
                key._valid = False
                key._events.clear()
                key._signal()
            self._unschedule(key)

    def _unschedule(self, key: WatchKey) -> None:
        # caller holds self._lock
        if key.watch is None:
            return
        watch, key.watch = key.watch, None
        try:
            self._observer.unschedule(watch)
        except KeyError:
            pass


__all__ = [
    "ClosedWatchServiceError",
    "EventKind",
    "MAX_EVENTS_PER_KEY",
    "WatchEvent",
    "WatchKey",
    "WatchService",
]
