"""change-watcher package root.

Watches a directory tree and fires a debounced reload action when matching
files are modified.  :class:`ChangeWatcher` is the polling engine;
:class:`ReloadService` wires it to a scheduler and a reload command.
"""

from .config import load_config
from .lifecycle import CommandReload, ReloadService
from .registry import DirectoryRegistry
from .scheduler import PollScheduler
from .watch_service import ClosedWatchServiceError, EventKind, WatchEvent, WatchKey, WatchService
from .watcher import ChangeWatcher, EngineState


__all__ = [
    "ChangeWatcher",
    "ClosedWatchServiceError",
    "CommandReload",
    "DirectoryRegistry",
    "EngineState",
    "EventKind",
    "PollScheduler",
    "ReloadService",
    "WatchEvent",
    "WatchKey",
    "WatchService",
    "load_config",
]
