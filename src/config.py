"""
Configuration management for PAGESMITH.

Handles persistent configuration including:
- Trusted origins for frame <-> host messages
- Sites directory, git auto-push and server port

Config is stored in config.json next to the executable/project root.
Environment variables (loaded from .env by app.py) take priority over it.
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from src.paths import get_config_path, get_sites_dir

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8081
DEFAULT_HOSTS = ('localhost', '127.0.0.1')

_TRUE_VALUES = ('1', 'true', 'yes', 'on')


def load_config() -> dict:
    """Load configuration from config.json."""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable {config_path}: {e}")
            return {}
    return {}


def save_config(config: dict) -> None:
    """Save configuration to config.json."""
    config_path = get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def get_port() -> int:
    """
    Get the server port.

    Priority:
    1. Environment variable PAGESMITH_PORT
    2. "port" in config.json
    3. DEFAULT_PORT
    """
    raw = os.environ.get("PAGESMITH_PORT") or load_config().get("port")
    if raw in (None, ''):
        return DEFAULT_PORT
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning(f"Invalid port {raw!r}, using {DEFAULT_PORT}")
        return DEFAULT_PORT


def get_trusted_origins(port: Optional[int] = None) -> List[str]:
    """
    Origins allowed to exchange overlay messages.

    PAGESMITH_TRUSTED_ORIGINS (comma separated) or "trusted_origins" in
    config.json; defaults to the app's own localhost origins.
    """
    env_value = os.environ.get("PAGESMITH_TRUSTED_ORIGINS")
    if env_value:
        origins = [o.strip() for o in env_value.split(',')]
    else:
        configured = load_config().get("trusted_origins")
        if isinstance(configured, str):
            configured = configured.split(',')
        if configured:
            origins = [str(o).strip() for o in configured]
        else:
            port = port or get_port()
            origins = [f"http://{host}:{port}" for host in DEFAULT_HOSTS]
    return [o.rstrip('/') for o in origins if o]


def get_auto_push() -> bool:
    """Push to the remote after every commit (PAGESMITH_AUTO_PUSH / "auto_push")."""
    env_value = os.environ.get("PAGESMITH_AUTO_PUSH")
    if env_value is not None:
        return _parse_bool(env_value)
    return _parse_bool(load_config().get("auto_push", False))


def get_sites_path() -> Path:
    """Sites directory from the environment, then config.json, then the default."""
    if os.environ.get("PAGESMITH_SITES_DIR"):
        return get_sites_dir()
    configured = load_config().get("sites_dir")
    if configured:
        path = Path(configured).expanduser()
        return path if path.is_absolute() else get_config_path().parent / path
    return get_sites_dir()


def set_auto_push(enabled: bool) -> None:
    """Save the auto-push preference to config.json."""
    config = load_config()
    config["auto_push"] = bool(enabled)
    save_config(config)
