"""
Settings - Application configuration loaded from settings.json.
"""

import json
import logging
from dataclasses import dataclass, asdict, field, fields
from pathlib import Path
from typing import Optional

from hexa_connect.networks import DEFAULT_NETWORK
from hexa_connect.utils import (
    get_settings_path,
    get_storage_path,
    get_backup_flag_path,
    get_exports_dir,
)
from hexa_connect.wallet.cipher import KDF_PROFILES, KdfParams

logger = logging.getLogger(__name__)


EXTERNAL_WALLET_METHOD = "connect-wallet"
SIGNIN_METHODS = ("connect-google", "connect-email", EXTERNAL_WALLET_METHOD)
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class ConnectSettings:
    """Runtime configuration for a Hexa Connect session."""
    chain_id: int = DEFAULT_NETWORK
    rpc_url: Optional[str] = None          # None = network default
    storage_path: Optional[str] = None     # None = <app dir>/storage.json
    export_dir: Optional[str] = None       # None = <app dir>/exports
    backup_flag_path: Optional[str] = None  # None = <app dir>/backup-request.json
    kdf: str = "default"                   # Key in KDF_PROFILES
    log_level: str = "INFO"
    log_retention_days: int = 0            # 0 = console only
    enabled_signin_methods: list[str] = field(default_factory=lambda: list(SIGNIN_METHODS))

    @property
    def external_wallet_enabled(self) -> bool:
        """Anonymous users may connect their own wallet."""
        return EXTERNAL_WALLET_METHOD in self.enabled_signin_methods

    @property
    def kdf_params(self) -> KdfParams:
        return KDF_PROFILES[self.kdf]

    def resolved_storage_path(self) -> Path:
        return Path(self.storage_path) if self.storage_path else get_storage_path()

    def resolved_export_dir(self) -> Path:
        return Path(self.export_dir) if self.export_dir else get_exports_dir()

    def resolved_backup_flag_path(self) -> Path:
        return Path(self.backup_flag_path) if self.backup_flag_path else get_backup_flag_path()

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ConnectSettings":
        """Create from dictionary with input validation. Unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}

        chain_id = values.get("chain_id", DEFAULT_NETWORK)
        if not isinstance(chain_id, int) or isinstance(chain_id, bool) or chain_id <= 0:
            raise ValueError(f"chain_id must be a positive integer, got {chain_id!r}")

        kdf = values.get("kdf", "default")
        if kdf not in KDF_PROFILES:
            raise ValueError(f"kdf must be one of {sorted(KDF_PROFILES)}, got {kdf!r}")

        log_level = str(values.get("log_level", "INFO")).upper()
        if log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {log_level!r}")
        values["log_level"] = log_level

        retention = values.get("log_retention_days", 0)
        if not isinstance(retention, int) or retention < 0:
            raise ValueError(f"log_retention_days must be non-negative integer, got {retention!r}")

        methods = values.get("enabled_signin_methods", list(SIGNIN_METHODS))
        unknown = [m for m in methods if m not in SIGNIN_METHODS]
        if unknown:
            raise ValueError(f"Unknown sign-in methods: {unknown}")

        return cls(**values)


def load_settings(path: Optional[Path] = None) -> ConnectSettings:
    """Load settings from disk (defaults if the file is missing or unreadable)."""
    settings_path = Path(path) if path else get_settings_path()
    if settings_path.exists():
        try:
            with open(settings_path, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load settings: {e}")
            return ConnectSettings()
        if not isinstance(data, dict):
            logger.warning("Ignoring settings file: expected a JSON object")
            return ConnectSettings()
        return ConnectSettings.from_dict(data)
    return ConnectSettings()


def save_settings(settings: ConnectSettings, path: Optional[Path] = None) -> None:
    """Save settings to disk."""
    settings_path = Path(path) if path else get_settings_path()
    with open(settings_path, 'w') as f:
        json.dump(settings.to_dict(), f, indent=2)
