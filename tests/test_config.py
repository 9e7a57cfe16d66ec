"""Config file and environment overrides."""

import json
import logging

from jisi_code.config import ClientConfig, config_file, load_config, save_config


def test_defaults_without_file(tmp_path):
    config = load_config(tmp_path / "missing.json")
    assert config == ClientConfig()
    assert config.ws_url == "ws://127.0.0.1:3001/ws"
    assert config.api_url == "http://127.0.0.1:3001"
    assert config.create_timeout == 30.0


def test_reads_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"ws_url": "ws://box:4000/ws", "reconnect_delay": 1.5}))
    config = load_config(path)
    assert config.ws_url == "ws://box:4000/ws"
    assert config.reconnect_delay == 1.5
    assert config.max_reconnect_attempts == 5


def test_environment_wins(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"ws_url": "ws://file/ws"}))
    monkeypatch.setenv("JISI_WS_URL", "ws://env/ws")
    monkeypatch.setenv("JISI_PROJECT_PATH", "/env/project")

    assert load_config(path).ws_url == "ws://env/ws"
    assert load_config(path).project_path == "/env/project"
    assert load_config(path, use_env=False).ws_url == "ws://file/ws"


def test_corrupt_file_falls_back(tmp_path, caplog):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with caplog.at_level(logging.WARNING, logger="jisi_code.config"):
        assert load_config(path) == ClientConfig()
    assert "Ignoring unreadable config" in caplog.text


def test_invalid_values_fall_back(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"reconnect_delay": "soon"}))
    assert load_config(path) == ClientConfig()


def test_save_and_reload(tmp_path):
    path = tmp_path / "nested" / "config.json"
    save_config(ClientConfig(api_url="http://box:4000", create_timeout=10), path)
    assert load_config(path).api_url == "http://box:4000"
    assert load_config(path).create_timeout == 10


def test_default_location_is_home():
    assert config_file().parts[-2:] == (".jisi", "config.json")
