"""
Backup - One-shot private key export and backup import.

A backup is requested before the wallet exists (while the user is still
in the sign-in flow) and honoured the next time a wallet is materialized.
The request survives restarts in a small flag file that lives outside
the storage provider.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from hexa_connect.models.store import PRIVATE_KEY_KEY, StorageProvider
from hexa_connect.utils import set_secure_permissions
from hexa_connect.wallet.cipher import SecretCipher
from hexa_connect.wallet.crypto import HexaWallet, restore_from_private_key
from hexa_connect.wallet.errors import MissingSecretError

logger = logging.getLogger(__name__)


MODE_PLAIN = "plain"
MODE_ENCRYPTED = "encrypted"
BACKUP_PREFIX = "hexa-backup-"


@dataclass(frozen=True)
class BackupRequest:
    requested: bool
    with_encryption: bool

    @property
    def mode(self) -> str:
        return MODE_ENCRYPTED if self.with_encryption else MODE_PLAIN


def backup_filename(now: Optional[datetime] = None) -> str:
    """hexa-backup-2024-08-01T12-00-00.txt (UTC, filename-safe ISO 8601)."""
    if now is None:
        now = datetime.now(timezone.utc)
    return f"{BACKUP_PREFIX}{now.strftime('%Y-%m-%dT%H-%M-%S')}.txt"


class BackupRequestStore:
    """Durable pending-backup flag."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def request(self, with_encryption: bool) -> BackupRequest:
        """Record that the next materialized wallet should be exported."""
        req = BackupRequest(requested=True, with_encryption=with_encryption)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump({
                "mode": req.mode,
                "requested_at": datetime.now(timezone.utc).isoformat(),
            }, f)
        set_secure_permissions(self.path)
        logger.info(f"Backup requested ({req.mode})")
        return req

    def pending(self) -> Optional[BackupRequest]:
        """The pending request, or None."""
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            mode = data["mode"]
        except (json.JSONDecodeError, KeyError, TypeError, OSError) as e:
            logger.warning(f"Ignoring unreadable backup request {self.path}: {e}")
            return None
        if mode not in (MODE_PLAIN, MODE_ENCRYPTED):
            logger.warning(f"Ignoring backup request with unknown mode {mode!r}")
            return None
        return BackupRequest(requested=True, with_encryption=(mode == MODE_ENCRYPTED))

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class BackupExporter:
    """
    Exports the stored private key when a backup request is pending.

    Usage:
        exporter = BackupExporter(storage, cipher, flags, export_dir)
        flags.request(with_encryption=False)
        ...
        path = exporter.maybe_export(secret)  # None once the flag is consumed
    """

    def __init__(self, storage: StorageProvider, cipher: SecretCipher,
                 flags: BackupRequestStore, export_dir: str | Path):
        self.storage = storage
        self.cipher = cipher
        self.flags = flags
        self.export_dir = Path(export_dir)

    def maybe_export(self, secret: Optional[str] = None) -> Optional[Path]:
        """
        Honour a pending backup request.

        Returns:
            Path of the written backup file, or None if nothing was pending

        Raises:
            MissingSecretError: a plaintext backup was requested without a secret
            DecryptionError: stored key cannot be decrypted with secret
            LookupError: no private key is stored
        """
        req = self.flags.pending()
        if req is None:
            return None

        blob = self.storage.get_backup()
        if req.with_encryption:
            data = blob
        else:
            if not secret:
                raise MissingSecretError("Secret is required to export an unencrypted backup")
            data = self.cipher.decrypt(secret, blob)

        path = self._write(data)
        logger.info(f"Exported {req.mode} backup to {path}")

        try:
            self.flags.clear()
        except OSError as e:
            logger.warning(f"Failed to clear backup request: {e}")
        return path

    def _write(self, data: str) -> Path:
        self.export_dir.mkdir(parents=True, exist_ok=True)
        name = backup_filename()
        path = self.export_dir / name
        counter = 1
        while path.exists():
            path = self.export_dir / f"{Path(name).stem}_{counter}.txt"
            counter += 1

        with open(path, "x", encoding="utf-8") as f:
            f.write(data)
        set_secure_permissions(path)
        return path

    def import_backup(self, path: str | Path, secret: str, encrypted: bool,
                      chain_id: Optional[int] = None, overwrite: bool = False) -> HexaWallet:
        """
        Store a previously exported backup for the current storage scope.

        The key is validated, then re-encrypted under secret.

        Args:
            path: Backup file written by maybe_export
            secret: Secret to protect the key with (and to decrypt an encrypted backup)
            encrypted: Whether the file holds an encrypted blob
            chain_id: Chain for the returned wallet
            overwrite: Replace an already stored key

        Raises:
            MissingSecretError: no secret given
            DecryptionError: encrypted backup does not open with secret
            InvalidKeyError: file does not hold a valid private key
            FileExistsError: a key is already stored and overwrite is False
        """
        if not secret:
            raise MissingSecretError("Secret is required to import a backup")
        if self.storage.is_existing_private_key_stored() and not overwrite:
            raise FileExistsError("A private key is already stored for this identity")

        with open(path, "r", encoding="utf-8") as f:
            data = f.read().strip()

        private_key = self.cipher.decrypt(secret, data) if encrypted else data
        wallet = restore_from_private_key(private_key, chain_id)
        self.storage.set_item(PRIVATE_KEY_KEY, self.cipher.encrypt(secret, wallet.private_key))
        logger.info(f"Imported backup for {wallet.address}")
        return wallet
