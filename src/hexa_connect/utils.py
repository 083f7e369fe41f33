"""
Shared utility functions for Hexa Connect.

Contains path helpers and common utilities used across packages.
"""

import os
import sys
from pathlib import Path


# Secure file permissions (Unix only)
SECURE_FILE_MODE = 0o600  # Owner read/write only


def set_secure_permissions(filepath: Path) -> None:
    """
    Set restrictive file permissions on Unix systems.

    Sets file to mode 0600 (owner read/write only) to protect wallet records.
    No-op on Windows (NTFS uses ACLs, not Unix permissions).
    """
    if os.name == 'posix':
        try:
            os.chmod(filepath, SECURE_FILE_MODE)
        except OSError:
            # Best effort - don't fail save operation if chmod fails
            pass


def get_app_dir() -> Path:
    """Get the application data directory (HEXA_HOME overrides)."""
    override = os.environ.get("HEXA_HOME")
    if override:
        app_dir = Path(override)
    elif getattr(sys, 'frozen', False):
        # Running as compiled
        app_dir = Path(sys.executable).parent / "data"
    else:
        app_dir = Path.home() / ".hexa-connect"

    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_storage_path() -> Path:
    """Get path to the encrypted records file."""
    return get_app_dir() / "storage.json"


def get_backup_flag_path() -> Path:
    """Get path to the pending backup request flag."""
    return get_app_dir() / "backup-request.json"


def get_exports_dir() -> Path:
    """Get the directory backups are exported to."""
    exports_dir = get_app_dir() / "exports"
    exports_dir.mkdir(parents=True, exist_ok=True)
    return exports_dir


def get_settings_path() -> Path:
    """Get path to settings file."""
    return get_app_dir() / "settings.json"


def get_logs_dir() -> Path:
    """Get the logs directory."""
    logs_dir = get_app_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir
