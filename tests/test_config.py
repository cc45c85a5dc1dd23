import pytest

from chat_shared.config import DEFAULT_SERVER_URL, DEFAULT_SOCKETIO_PATH, ChatConfig
from chat_shared.events import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("SOCKCHAT_SERVER", "SOCKCHAT_PATH", "SOCKCHAT_LOG_LEVEL", "SOCKCHAT_CONFIG"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults_without_file():
    cfg = ChatConfig.load()

    assert cfg.server_url == DEFAULT_SERVER_URL == "wss://api.leetcode.se"
    assert cfg.socketio_path == DEFAULT_SOCKETIO_PATH == "/sys25d"
    assert cfg.transports == ["websocket"]
    assert cfg.reconnection is True


def test_yaml_file_overrides_defaults(tmp_path):
    (tmp_path / "sockchat.yaml").write_text(
        "server_url: http://localhost:5000\n"
        "socketio_path: /socket.io\n"
        "transports: polling\n"
        "wait_timeout: 2\n"
        "bogus: 1\n"
    )

    cfg = ChatConfig.load()

    assert cfg.server_url == "http://localhost:5000"
    assert cfg.socketio_path == "/socket.io"
    assert cfg.transports == ["polling"]
    assert cfg.wait_timeout == 2.0
    assert not hasattr(cfg, "bogus")


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("server_url: http://file:1\n")
    monkeypatch.setenv("SOCKCHAT_CONFIG", str(path))
    monkeypatch.setenv("SOCKCHAT_SERVER", "http://env:2")
    monkeypatch.setenv("SOCKCHAT_PATH", "/env")

    cfg = ChatConfig.load()

    assert cfg.server_url == "http://env:2"
    assert cfg.socketio_path == "/env"


def test_explicit_missing_file_is_an_error(tmp_path):
    with pytest.raises(ConfigError):
        ChatConfig.load(tmp_path / "nope.yaml")


@pytest.mark.parametrize("content", ["- a\n- b\n", "key: [unclosed\n"])
def test_invalid_yaml_is_an_error(tmp_path, content):
    path = tmp_path / "bad.yaml"
    path.write_text(content)

    with pytest.raises(ConfigError):
        ChatConfig.load(path)


def test_to_dict_roundtrips_fields():
    cfg = ChatConfig(server_url="http://x")
    assert cfg.to_dict()["server_url"] == "http://x"
    assert set(cfg.to_dict()) == {"server_url", "socketio_path", "transports", "reconnection", "wait_timeout", "log_level"}
