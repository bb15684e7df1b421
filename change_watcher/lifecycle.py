"""Enable/disable lifecycle tying a watcher to its scheduler and reload action."""

from __future__ import annotations

import logging
import shlex
import subprocess
from typing import Any, Callable, Dict, List, Optional

from .config import load_config
from .scheduler import DEFAULT_POLL_INTERVAL, PollScheduler
from .watch_service import WatchService
from .watcher import DEFAULT_RELOAD_THRESHOLD, ChangeWatcher


logger = logging.getLogger(__name__)


class CommandReload:
    """Reload action that launches ``command`` and returns immediately.

    The watcher invokes its callback while holding its lock, so the process is
    started with :class:`subprocess.Popen` and never waited on.  A reload
    requested while the previous process is still running is skipped.
    """

    def __init__(self, command: str | List[str]) -> None:
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        self._process: Optional[subprocess.Popen] = None

    def __call__(self) -> None:
        if self._process is not None and self._process.poll() is None:
            logger.warning("Reload command still running (pid %s); skipping", self._process.pid)
            return
        logger.info("Running reload command: %s", shlex.join(self.command))
        self._process = subprocess.Popen(self.command)


def _log_reload() -> None:
    logger.info("Change detected, reload requested")


class ReloadService:
    """Own a :class:`ChangeWatcher` and the job polling it."""

    def __init__(
        self,
        cfg: Optional[Dict[str, Any]] = None,
        *,
        reload_action: Optional[Callable[[], None]] = None,
        service_factory: Optional[Callable[[], WatchService]] = None,
    ) -> None:
        self.cfg = cfg if cfg is not None else load_config()
        if reload_action is None:
            command = self.cfg.get("reload_command")
            reload_action = CommandReload(command) if command else _log_reload
        self.reload_action = reload_action
        self._service_factory = service_factory
        self.watcher: Optional[ChangeWatcher] = None
        self.poller: Optional[PollScheduler] = None

    @property
    def enabled(self) -> bool:
        return self.watcher is not None

    def enable(self) -> None:
        """Start watching; errors setting up the watcher propagate."""

        if self.enabled:
            return
        cfg = self.cfg
        if self._service_factory is not None:
            service = self._service_factory()
        else:
            service = WatchService(polling=bool(cfg.get("polling", False)))
        watcher = ChangeWatcher(
            cfg.get("root", "."),
            self.reload_action,
            bool(cfg.get("recursive", False)),
            cfg.get("file_extension"),
            reload_threshold=int(cfg.get("reload_threshold", DEFAULT_RELOAD_THRESHOLD)),
            min_interval=cfg.get("min_interval"),
            service=service,
        )
        try:
            poller = PollScheduler(
                watcher,
                interval=float(cfg.get("poll_interval", DEFAULT_POLL_INTERVAL)),
            )
            poller.start()
        except Exception:
            watcher.close()
            raise
        self.watcher = watcher
        self.poller = poller
        logger.info("Change watcher enabled")

    def disable(self) -> None:
        if self.poller is not None:
            self.poller.stop()
            self.poller = None
        if self.watcher is not None:
            self.watcher.close()
            self.watcher = None
        logger.info("Change watcher disabled")


__all__ = ["CommandReload", "ReloadService"]
