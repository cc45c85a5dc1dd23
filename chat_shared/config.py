"""
Client configuration.

Resolution order (later wins):
    built-in defaults -> YAML file -> SOCKCHAT_* environment variables

Example sockchat.yaml:
    server_url: wss://api.leetcode.se
    socketio_path: /sys25d
    transports: [websocket]
    reconnection: true
    wait_timeout: 5
    log_level: INFO
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from chat_shared.events import ConfigError
from chat_shared.log import get_logger

logger = get_logger(__name__)

DEFAULT_SERVER_URL = "wss://api.leetcode.se"
DEFAULT_SOCKETIO_PATH = "/sys25d"
DEFAULT_CONFIG_FILE = "sockchat.yaml"


@dataclass
class ChatConfig:
    server_url: str = DEFAULT_SERVER_URL
    socketio_path: str = DEFAULT_SOCKETIO_PATH
    transports: List[str] = field(default_factory=lambda: ["websocket"])
    reconnection: bool = True
    wait_timeout: float = 5.0
    log_level: Optional[str] = None

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> 'ChatConfig':
        """Build a config from defaults, an optional YAML file and the environment."""
        config = cls()

        config_path = cls._config_path(path)
        if config_path.exists():
            config.update(_read_yaml(config_path))
        elif path is not None:
            raise ConfigError(f"Config file not found: {config_path}")
        else:
            logger.info("No %s found; using defaults", config_path)

        config.update(_env_overrides())
        return config

    @staticmethod
    def _config_path(path: Optional[Union[str, Path]]) -> Path:
        if path is not None:
            return Path(path).expanduser()
        return Path(os.getenv("SOCKCHAT_CONFIG", DEFAULT_CONFIG_FILE)).expanduser()

    def update(self, values: Dict[str, Any]) -> None:
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            if key not in known:
                logger.warning("Ignoring unknown config key: %s", key)
                continue
            setattr(self, key, value)

        if isinstance(self.transports, str):
            self.transports = [self.transports]
        self.wait_timeout = float(self.wait_timeout)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error reading {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")
    logger.debug("Loaded config from %s", path)
    return data


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if os.getenv("SOCKCHAT_SERVER"):
        overrides["server_url"] = os.environ["SOCKCHAT_SERVER"]
    if os.getenv("SOCKCHAT_PATH"):
        overrides["socketio_path"] = os.environ["SOCKCHAT_PATH"]
    if os.getenv("SOCKCHAT_LOG_LEVEL"):
        overrides["log_level"] = os.environ["SOCKCHAT_LOG_LEVEL"]
    return overrides
