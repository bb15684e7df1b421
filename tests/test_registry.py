import logging
import os

import pytest

from change_watcher.registry import DirectoryRegistry


def _tree(root):
    (root / "a" / "b").mkdir(parents=True)
    (root / "c").mkdir()
    (root / "a" / "file.jar").write_text("x")
    return root


def test_non_recursive_registers_only_root(service, observer, tmp_path):
    _tree(tmp_path)
    registry = DirectoryRegistry(service)

    registry.initialize(tmp_path, recursive=False)

    assert registry.directories() == [tmp_path]
    assert observer.paths() == [str(tmp_path)]


def test_recursive_registers_every_directory(service, tmp_path):
    _tree(tmp_path)
    registry = DirectoryRegistry(service)

    registry.initialize(tmp_path, recursive=True)

    assert registry.directories() == sorted(
        [tmp_path, tmp_path / "a", tmp_path / "a" / "b", tmp_path / "c"]
    )
    assert len(registry) == 4
    assert tmp_path / "a" / "b" in registry


@pytest.mark.parametrize("recursive", [True, False])
def test_missing_root_raises(service, tmp_path, recursive):
    registry = DirectoryRegistry(service)

    with pytest.raises(FileNotFoundError):
        registry.initialize(tmp_path / "missing", recursive=recursive)


def test_recursive_follows_links_without_looping(service, tmp_path):
    (tmp_path / "real").mkdir()
    try:
        os.symlink(tmp_path / "real", tmp_path / "link", target_is_directory=True)
        os.symlink(tmp_path, tmp_path / "real" / "back", target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not supported")
    registry = DirectoryRegistry(service)

    registry.initialize(tmp_path, recursive=True)

    # root and real, each reachable once
    assert len(registry) == 2


def test_register_directory_reuses_key_and_logs_once(service, tmp_path, caplog):
    registry = DirectoryRegistry(service)
    with caplog.at_level(logging.INFO, logger="change_watcher.registry"):
        first = registry.register_directory(tmp_path)
        second = registry.register_directory(tmp_path)

    assert first is second
    assert len(registry) == 1
    assert [r.getMessage() for r in caplog.records] == [f"Watching: {tmp_path}"]


def test_register_directory_logs_remapping(service, tmp_path, caplog):
    old = tmp_path / "old"
    old.mkdir()
    registry = DirectoryRegistry(service)
    key = registry.register_directory(old)
    new = tmp_path / "new"
    old.rename(new)

    with caplog.at_level(logging.INFO, logger="change_watcher.registry"):
        assert registry.register_directory(new) is key

    assert registry.resolve(key) == new
    assert f"Update: {old} -> {new}" in caplog.text


def test_unregister_removes_mapping(service, tmp_path):
    registry = DirectoryRegistry(service)
    key = registry.register_directory(tmp_path)

    registry.unregister(key)

    assert registry.resolve(key) is None
    assert len(registry) == 0
