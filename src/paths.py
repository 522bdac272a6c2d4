"""
Path utilities for PAGESMITH.

Handles path resolution for both development mode and frozen (PyInstaller) executables.
- In development: paths are relative to the project root
- When frozen: paths are relative to the executable location

External data (sites/, config.json) lives NEXT TO the executable, not bundled inside.
"""

import os
import sys
from pathlib import Path


def get_app_dir() -> Path:
    """
    Get the application directory.

    - In development: the project root (parent of src/)
    - When frozen: the directory containing the executable

    This is where the sites folder and config.json are located.
    """
    if getattr(sys, 'frozen', False):
        # Running as PyInstaller bundle - use executable's directory
        return Path(sys.executable).parent
    else:
        # Development mode - use the project root (parent of src/)
        return Path(__file__).parent.parent


def get_config_path() -> Path:
    """Get the path to the config file."""
    return get_app_dir() / "config.json"


def get_sites_dir() -> Path:
    """
    Get the directory holding the editable pages.

    PAGESMITH_SITES_DIR wins; relative values are resolved against the app directory.
    """
    override = os.environ.get("PAGESMITH_SITES_DIR")
    if override:
        path = Path(override).expanduser()
        return path if path.is_absolute() else get_app_dir() / path
    return get_app_dir() / "sites"


def ensure_sites_dir(sites_dir: Path = None) -> Path:
    """
    Ensure the sites directory exists, creating it if necessary.
    Returns the path to the sites directory.
    """
    sites_dir = Path(sites_dir) if sites_dir else get_sites_dir()
    sites_dir.mkdir(parents=True, exist_ok=True)
    return sites_dir
