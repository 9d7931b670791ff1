"""
Configuration management for DevDash.

Handles persistent configuration including:
- Storage backend selection ('local' or 'supabase')
- Supabase project URL and key
- Local data directory, session storage secret and log level

Config is stored in config.json next to the executable/project root.
Environment variables (optionally from a .env file) take precedence.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Tuple

from devdash.paths import get_config_path, get_data_dir

logger = logging.getLogger(__name__)

DEFAULT_BACKEND = "local"
DEFAULT_LOG_LEVEL = "INFO"


def load_config() -> dict:
    """Load configuration from config.json."""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            return {}
    return {}


def save_config(config: dict) -> None:
    """Save configuration to config.json."""
    config_path = get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def get_storage_backend(config: Optional[dict] = None) -> str:
    """
    Get the storage backend type.

    Priority:
    1. Environment variable DEVDASH_STORAGE_BACKEND
    2. 'storage_backend' (or legacy 'backend') in config.json
    3. 'local'
    """
    env_backend = os.environ.get("DEVDASH_STORAGE_BACKEND")
    if env_backend:
        return env_backend.strip().lower()

    if config is None:
        config = load_config()
    return config.get("storage_backend", config.get("backend", DEFAULT_BACKEND))


def get_supabase_credentials(config: Optional[dict] = None) -> Tuple[Optional[str], Optional[str]]:
    """
    Get the Supabase project URL and publishable key.

    Environment variables SUPABASE_URL / SUPABASE_KEY win over config.json.
    """
    if config is None:
        config = load_config()
    url = os.environ.get("SUPABASE_URL") or config.get("supabase_url")
    key = os.environ.get("SUPABASE_KEY") or config.get("supabase_key")
    return url, key


def get_local_data_dir(config: Optional[dict] = None) -> Path:
    """Directory for the local JSON backend (DEVDASH_DATA_DIR > config > ./data)."""
    if os.environ.get("DEVDASH_DATA_DIR"):
        return get_data_dir()
    if config is None:
        config = load_config()
    if config.get("data_dir"):
        return Path(config["data_dir"])
    return get_data_dir()


def get_storage_secret(config: Optional[dict] = None) -> str:
    """Secret used by NiceGUI to sign app.storage.user cookies."""
    env_secret = os.environ.get("DEVDASH_STORAGE_SECRET")
    if env_secret:
        return env_secret
    if config is None:
        config = load_config()
    return config.get("storage_secret", "devdash-local-secret")


def get_log_level(config: Optional[dict] = None) -> str:
    env_level = os.environ.get("LOG_LEVEL")
    if env_level:
        return env_level.upper()
    if config is None:
        config = load_config()
    return str(config.get("log_level", DEFAULT_LOG_LEVEL)).upper()
