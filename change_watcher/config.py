"""Configuration helpers for change watchers."""

from __future__ import annotations

import os
from typing import Any, Dict

import yaml

from .scheduler import DEFAULT_POLL_INTERVAL
from .watcher import DEFAULT_RELOAD_THRESHOLD


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false", "no", "off")
    return bool(value)


def load_config(path: str | None = None) -> Dict[str, Any]:
    """Load configuration from ``path`` or ``CHANGE_WATCHER_CONFIG`` env var.

    Recognised keys are ``root``, ``recursive``, ``file_extension``,
    ``reload_threshold``, ``min_interval``, ``poll_interval``, ``polling`` and
    ``reload_command``.  Each may be overridden by an environment variable
    named ``CHANGE_WATCHER_<NAME>`` (``EXTENSION``, ``THRESHOLD`` and
    ``COMMAND`` for the longer names).
    """

    cfg: Dict[str, Any] = {}
    path = path or os.getenv("CHANGE_WATCHER_CONFIG")
    if path and os.path.exists(path):
        with open(path, "r") as fh:
            cfg = yaml.safe_load(fh) or {}

    cfg["root"] = os.getenv("CHANGE_WATCHER_ROOT", cfg.get("root", "."))

    cfg["recursive"] = _as_bool(
        os.getenv("CHANGE_WATCHER_RECURSIVE", cfg.get("recursive", False))
    )
    cfg["polling"] = _as_bool(os.getenv("CHANGE_WATCHER_POLLING", cfg.get("polling", False)))

    extension = os.getenv("CHANGE_WATCHER_EXTENSION", cfg.get("file_extension"))
    cfg["file_extension"] = str(extension).lstrip(".") if extension else None
    if not cfg["file_extension"]:
        cfg["file_extension"] = None

    cfg["reload_threshold"] = int(
        os.getenv("CHANGE_WATCHER_THRESHOLD", cfg.get("reload_threshold", DEFAULT_RELOAD_THRESHOLD))
    )
    cfg["poll_interval"] = float(
        os.getenv("CHANGE_WATCHER_POLL_INTERVAL", cfg.get("poll_interval", DEFAULT_POLL_INTERVAL))
    )

    min_interval = os.getenv("CHANGE_WATCHER_MIN_INTERVAL", cfg.get("min_interval"))
    cfg["min_interval"] = float(min_interval) if min_interval not in (None, "") else None

    if "CHANGE_WATCHER_COMMAND" in os.environ:
        cfg["reload_command"] = os.environ["CHANGE_WATCHER_COMMAND"]
    else:
        cfg.setdefault("reload_command", None)

    return cfg
