"""Mapping between watch keys and the directories they observe."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from .watch_service import WatchKey, WatchService


logger = logging.getLogger(__name__)


def _raise(err: OSError) -> None:
    raise err


class DirectoryRegistry:
    """Keep the set of watched directories in step with the live tree."""

    def __init__(self, service: WatchService) -> None:
        self._service = service
        self._keys: Dict[WatchKey, Path] = {}

    def initialize(self, root: str | Path, recursive: bool) -> None:
        """Register ``root`` and, when ``recursive``, every directory below it.

        Symbolic links are followed.  Any failure while walking raises
        :class:`OSError`.
        """

        root = Path(root)
        if not recursive:
            self.register_directory(root)
            return

        seen: Set[Tuple[int, int]] = set()
        for dirpath, dirnames, _ in os.walk(root, onerror=_raise, followlinks=True):
            st = os.stat(dirpath)
            ident = (st.st_dev, st.st_ino)
            if ident in seen:
                dirnames[:] = []
                continue
            seen.add(ident)
            self.register_directory(Path(dirpath))

    def register_directory(self, path: str | Path) -> WatchKey:
        """Subscribe ``path``; registering a known directory reuses its key."""

        path = Path(path)
        key = self._service.register(path)
        registered = self._keys.get(key)
        if registered is None:
            logger.info("Watching: %s", path)
        elif registered != path:
            logger.info("Update: %s -> %s", registered, path)
        self._keys[key] = path
        return key

    def unregister(self, key: WatchKey) -> None:
        path = self._keys.pop(key, None)
        if path is not None:
            logger.info("No longer watching: %s", path)

    def resolve(self, key: WatchKey) -> Optional[Path]:
        return self._keys.get(key)

    def directories(self) -> List[Path]:
        return sorted(self._keys.values())

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, path: object) -> bool:
        return path in self._keys.values()


__all__ = ["DirectoryRegistry"]
