"""
Path utilities for DevDash.

Handles path resolution for both development mode and frozen (PyInstaller) executables.
- In development: paths are relative to the project root
- When frozen: paths are relative to the executable location

Local data (data/, config.json) lives NEXT TO the executable, not bundled inside.
"""

import os
import sys
from pathlib import Path


def get_app_dir() -> Path:
    """
    Get the application directory.

    - In development: the project root (parent of devdash/)
    - When frozen: the directory containing the executable
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent.parent


def get_data_dir() -> Path:
    """Get the directory used by the local storage backend."""
    override = os.environ.get("DEVDASH_DATA_DIR")
    if override:
        return Path(override)
    return get_app_dir() / "data"


def get_config_path() -> Path:
    """Get the path to the config file (backend choice, Supabase credentials, etc.)."""
    override = os.environ.get("DEVDASH_CONFIG")
    if override:
        return Path(override)
    return get_app_dir() / "config.json"


def ensure_data_dir() -> Path:
    """
    Ensure the data directory exists, creating it if necessary.
    Returns the path to the data directory.
    """
    data_dir = get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
