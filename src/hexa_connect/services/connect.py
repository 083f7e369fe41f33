"""
Hexa Connect - Application-facing entry point.

Wires settings, storage, cipher, backup and the lifecycle orchestrator
together, and exposes the small surface an application needs:

    hexa = HexaConnect(auth=auth_provider)
    unsubscribe = hexa.on_connect_state_changed(print)

    hexa.set_secret(password)          # collected by the UI
    hexa.request_backup(with_encryption=True)
    auth_provider.sign_in(uid)         # lifecycle runs on the event
"""

import logging
from pathlib import Path
from typing import Any, Callable, Optional

from hexa_connect.models.store import JsonFileStorage, StorageProvider
from hexa_connect.settings import ConnectSettings, load_settings
from hexa_connect.wallet.attestation import PasswordAttestation
from hexa_connect.wallet.cipher import SecretCipher
from hexa_connect.wallet.crypto import HexaWallet
from hexa_connect.wallet.errors import InvalidKeyError

from .backup import BackupExporter, BackupRequestStore
from .lifecycle import AuthEventChannel, WalletLifecycleOrchestrator
from .providers import AuthProvider, ExternalWalletConnector

logger = logging.getLogger(__name__)


class HexaConnect:
    """Secret-gated wallet for an authenticated user."""

    def __init__(
        self,
        auth: AuthProvider,
        settings: Optional[ConnectSettings] = None,
        storage: Optional[StorageProvider] = None,
        connector: Optional[ExternalWalletConnector] = None,
        auth_config: Optional[dict] = None,
    ):
        self.settings = settings or load_settings()
        self.auth = auth
        self.auth.initialize(auth_config)

        self.storage = storage or JsonFileStorage(self.settings.resolved_storage_path())
        self.storage.initialize()

        self.cipher = SecretCipher(self.settings.kdf_params)
        self.backup_flags = BackupRequestStore(self.settings.resolved_backup_flag_path())
        self.exporter = BackupExporter(
            self.storage,
            self.cipher,
            self.backup_flags,
            self.settings.resolved_export_dir(),
        )
        self.orchestrator = WalletLifecycleOrchestrator(
            storage=self.storage,
            cipher=self.cipher,
            auth=self.auth,
            connector=connector,
            backup=self.exporter,
            chain_id=self.settings.chain_id,
            rpc_url=self.settings.rpc_url,
            allow_external=self.settings.external_wallet_enabled,
        )
        self._channels: list[AuthEventChannel] = []

        logger.info(f"Hexa Connect initialized (chain {self.settings.chain_id})")

    # ============================================
    # Session
    # ============================================

    @property
    def provider(self) -> Any:
        return self.orchestrator.provider

    @property
    def user_info(self) -> Optional[dict]:
        return self.orchestrator.user_info

    @property
    def wallet(self) -> Optional[HexaWallet]:
        return self.orchestrator.wallet

    def set_secret(self, secret: str) -> None:
        """Hold the user's secret in memory for the next sign-in."""
        self.orchestrator.set_secret(secret)

    def on_connect_state_changed(
        self,
        cb: Callable[[Optional[dict]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Callable[[], None]:
        """
        Run the wallet lifecycle on every auth event.

        cb receives the public user info (address, did, publicKey) or None.
        Returns a function that stops listening.
        """
        channel = AuthEventChannel(self.orchestrator, self.auth, on_result=cb, on_error=on_error)
        channel.start()
        self._channels.append(channel)

        def unsubscribe() -> None:
            channel.stop()
            if channel in self._channels:
                self._channels.remove(channel)

        return unsubscribe

    def wait_idle(self) -> None:
        """Block until every queued auth event has been handled."""
        for channel in list(self._channels):
            channel.wait_idle()

    def sign_out(self) -> None:
        self.orchestrator.sign_out()

    def close(self) -> None:
        for channel in list(self._channels):
            channel.stop()
        self._channels.clear()

    # ============================================
    # Backups
    # ============================================

    def request_backup(self, with_encryption: bool = True) -> None:
        """Export the key the next time a wallet is materialized."""
        self.backup_flags.request(with_encryption)

    def is_existing_private_key_stored(self, uid: str) -> bool:
        with self.orchestrator.lock:
            self.storage.initialize(uid)
            return self.storage.is_existing_private_key_stored()

    def import_backup(self, uid: str, path: str | Path, secret: str,
                      encrypted: bool = True, overwrite: bool = False) -> HexaWallet:
        """
        Store a backup file for uid so the next sign-in restores it.

        The secret is attested (or verified) first, exactly as at sign-in.
        """
        with self.orchestrator.lock:
            self.storage.initialize(uid)
            attestation = PasswordAttestation(self.storage, self.cipher.kdf)
            created = attestation.execute(secret)
            try:
                wallet = self.exporter.import_backup(
                    path, secret, encrypted, chain_id=self.settings.chain_id, overwrite=overwrite
                )
            except Exception:
                if created:
                    attestation.remove()
                raise
        wallet.lock()
        return wallet

    # ============================================
    # Signing
    # ============================================

    def sign_message(self, message: str | bytes) -> str:
        wallet = self.wallet
        if wallet is None or not wallet.has_private_key:
            raise InvalidKeyError("No wallet with a private key is connected")
        return wallet.sign_message(message)

    def verify_signature(self, message: str | bytes, signature: str) -> bool:
        wallet = self.wallet
        if wallet is None:
            raise InvalidKeyError("No wallet is connected")
        return wallet.verify_signature(message, signature)
