"""
User configuration: ~/.jisi/config.json, overridden by JISI_* environment variables.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError

from jisi_code.timer import DEFAULT_CREATE_TIMEOUT_S
from jisi_code.transport.http import DEFAULT_API_URL
from jisi_code.transport.websocket import DEFAULT_WS_URL, MAX_RECONNECT_ATTEMPTS, RECONNECT_DELAY_S

logger = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "JISI_WS_URL": "ws_url",
    "JISI_API_URL": "api_url",
    "JISI_PROJECT_PATH": "project_path",
}


def config_file() -> Path:
    return Path.home() / ".jisi" / "config.json"


class ClientConfig(BaseModel):
    ws_url: str = DEFAULT_WS_URL
    api_url: str = DEFAULT_API_URL
    reconnect_delay: float = RECONNECT_DELAY_S
    max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS
    create_timeout: float = DEFAULT_CREATE_TIMEOUT_S
    project_path: str = "."


def load_config(path: Optional[Path] = None, use_env: bool = True) -> ClientConfig:
    """Read the config file; a missing or unreadable file yields defaults."""
    path = path or config_file()
    data: dict = {}
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError:
        pass
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
    if not isinstance(data, dict):
        data = {}
    if use_env:
        for env_name, key in ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value:
                data[key] = value
    try:
        return ClientConfig.model_validate(data)
    except ValidationError as e:
        logger.warning("Invalid config in %s, using defaults: %s", path, e)
        return ClientConfig()


def save_config(config: ClientConfig, path: Optional[Path] = None) -> None:
    path = path or config_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.model_dump(), indent=2))
