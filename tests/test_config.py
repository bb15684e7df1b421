import yaml

from change_watcher.config import load_config


def _clear(monkeypatch):
    for name in (
        "CHANGE_WATCHER_CONFIG",
        "CHANGE_WATCHER_ROOT",
        "CHANGE_WATCHER_RECURSIVE",
        "CHANGE_WATCHER_EXTENSION",
        "CHANGE_WATCHER_THRESHOLD",
        "CHANGE_WATCHER_MIN_INTERVAL",
        "CHANGE_WATCHER_POLL_INTERVAL",
        "CHANGE_WATCHER_POLLING",
        "CHANGE_WATCHER_COMMAND",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    _clear(monkeypatch)

    cfg = load_config()

    assert cfg == {
        "root": ".",
        "recursive": False,
        "polling": False,
        "file_extension": None,
        "reload_threshold": 60,
        "poll_interval": 0.05,
        "min_interval": None,
        "reload_command": None,
    }


def test_yaml_file(monkeypatch, tmp_path):
    _clear(monkeypatch)
    path = tmp_path / "watch.yml"
    path.write_text(
        yaml.safe_dump(
            {
                "root": "/srv/plugins",
                "recursive": True,
                "file_extension": ".jar",
                "reload_threshold": 20,
                "reload_command": "systemctl reload app",
            }
        )
    )
    monkeypatch.setenv("CHANGE_WATCHER_CONFIG", str(path))

    cfg = load_config()

    assert cfg["root"] == "/srv/plugins"
    assert cfg["recursive"] is True
    assert cfg["file_extension"] == "jar"
    assert cfg["reload_threshold"] == 20
    assert cfg["reload_command"] == "systemctl reload app"


def test_env_overrides_file(monkeypatch, tmp_path):
    _clear(monkeypatch)
    path = tmp_path / "watch.yml"
    path.write_text(yaml.safe_dump({"recursive": True, "file_extension": "jar"}))
    monkeypatch.setenv("CHANGE_WATCHER_RECURSIVE", "no")
    monkeypatch.setenv("CHANGE_WATCHER_EXTENSION", "py")
    monkeypatch.setenv("CHANGE_WATCHER_MIN_INTERVAL", "2.5")
    monkeypatch.setenv("CHANGE_WATCHER_POLLING", "1")
    monkeypatch.setenv("CHANGE_WATCHER_COMMAND", "make reload")

    cfg = load_config(str(path))

    assert cfg["recursive"] is False
    assert cfg["file_extension"] == "py"
    assert cfg["min_interval"] == 2.5
    assert cfg["polling"] is True
    assert cfg["reload_command"] == "make reload"


def test_missing_file_falls_back_to_defaults(monkeypatch, tmp_path):
    _clear(monkeypatch)

    cfg = load_config(str(tmp_path / "nope.yml"))

    assert cfg["root"] == "."
    assert cfg["reload_threshold"] == 60
