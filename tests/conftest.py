import sys
from pathlib import Path

import pytest

# Ensure package root is on sys.path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from change_watcher.watch_service import WatchService  # noqa: E402
from tests.utils.observer import FakeObserver  # noqa: E402


@pytest.fixture
def observer():
    return FakeObserver()


@pytest.fixture
def service(observer):
    svc = WatchService(observer_factory=lambda: observer)
    yield svc
    svc.close()


@pytest.fixture
def reloads():
    calls = []

    def _reload():
        calls.append(len(calls) + 1)

    _reload.calls = calls
    return _reload
