"""
Wallet Lifecycle - Decides, per identity event, how the wallet comes to be.

For every auth event exactly one of these happens:
- restore: decrypt the stored private key with the secret
- generate: create a new wallet and store its key encrypted under the secret
- delegate: anonymous users connect an external wallet (no key custody)

A sign-out (None event) clears the secret and wallet together.
Any failure rolls back the records written by the attempt, clears the
session and signs the user out before the error reaches the caller.
"""

import logging
import queue
import threading
from typing import Any, Callable, Optional

from hexa_connect.models.session import IdentityEvent, LifecycleState, SessionState
from hexa_connect.models.store import PRIVATE_KEY_KEY, SECRET_KEY, StorageProvider
from hexa_connect.networks import get_default_provider
from hexa_connect.wallet.attestation import ATTESTATION_KEY, PasswordAttestation
from hexa_connect.wallet.cipher import SecretCipher
from hexa_connect.wallet.crypto import HexaWallet, generate_fresh, restore_from_private_key
from hexa_connect.wallet.errors import MissingSecretError

from .backup import BackupExporter
from .providers import AuthProvider, ExternalWalletConnector

logger = logging.getLogger(__name__)


class WalletLifecycleOrchestrator:
    """
    State machine owning one session's secret and wallet.

    Entries are serialized: a transition for one identity never
    interleaves with a transition for another.
    """

    def __init__(
        self,
        storage: StorageProvider,
        cipher: Optional[SecretCipher] = None,
        auth: Optional[AuthProvider] = None,
        connector: Optional[ExternalWalletConnector] = None,
        backup: Optional[BackupExporter] = None,
        chain_id: Optional[int] = None,
        rpc_url: Optional[str] = None,
        allow_external: bool = True,
    ):
        self.storage = storage
        self.cipher = cipher or SecretCipher()
        self.attestation = PasswordAttestation(storage, self.cipher.kdf)
        self.auth = auth
        self.connector = connector
        self.backup = backup
        self.chain_id = chain_id
        self.rpc_url = rpc_url
        self.allow_external = allow_external

        self.session = SessionState(provider=self._default_provider())
        self._pending_secret: Optional[str] = None
        self._lock = threading.RLock()

    def _default_provider(self) -> Any:
        return get_default_provider(self.chain_id, self.rpc_url)

    # ============================================
    # Session accessors
    # ============================================

    @property
    def lock(self) -> threading.RLock:
        """Held for the duration of every transition."""
        return self._lock

    @property
    def state(self) -> LifecycleState:
        return self.session.state

    @property
    def wallet(self) -> Optional[HexaWallet]:
        with self._lock:
            return self.session.wallet if self.session.is_ready else None

    @property
    def provider(self) -> Any:
        return self.session.provider

    @property
    def user_info(self) -> Optional[dict]:
        wallet = self.wallet
        return wallet.user_info() if wallet else None

    def set_secret(self, secret: str) -> None:
        """Hold the secret collected by the UI for the next sign-in."""
        if not secret:
            raise MissingSecretError("Secret must not be empty")
        with self._lock:
            self._pending_secret = secret

    # ============================================
    # Transitions
    # ============================================

    def init_wallet(
        self,
        event: Optional[IdentityEvent],
        secret: Optional[str] = None,
        chain_id: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[HexaWallet]:
        """
        Run the lifecycle for one auth event.

        Args:
            event: The signed-in identity, or None on sign-out
            secret: The user's secret (falls back to set_secret(), then to
                the stored secret record)
            chain_id: Chain for the wallet (default: orchestrator's chain)
            cancel_event: Abandons a pending external wallet connection

        Returns:
            The materialized wallet, or None after a sign-out
        """
        with self._lock:
            if event is None:
                self._reset()
                logger.info("Signed out; wallet cleared")
                return None

            if self.session.is_ready and self.session.uid == event.uid:
                return self.session.wallet

            if self.session.uid is not None or self.session.wallet is not None:
                logger.info("Identity changed; clearing previous session")
                pending = self._pending_secret
                self._reset()
                self._pending_secret = pending

            self.session.state = LifecycleState.AUTHENTICATING
            chain_id = chain_id if chain_id is not None else self.chain_id

            if event.is_anonymous:
                return self._delegate_external(event, cancel_event)
            return self._materialize(event, secret, chain_id)

    def sign_out(self) -> None:
        """Forget the stored secret record and sign the user out."""
        with self._lock:
            if self.session.uid is not None:
                self.storage.initialize(self.session.uid)
                self.storage.remove_item(SECRET_KEY)
            self._reset()
        if self.auth is not None:
            self.auth.sign_out()

    def _reset(self, state: LifecycleState = LifecycleState.IDLE) -> None:
        self._pending_secret = None
        self.session.clear(provider=self._default_provider())
        self.session.state = state

    def _delegate_external(self, event: IdentityEvent,
                           cancel_event: Optional[threading.Event]) -> HexaWallet:
        self.session.state = LifecycleState.DELEGATING_EXTERNAL
        logger.info(f"Anonymous user {event.uid}: delegating to external wallet")
        try:
            if not self.allow_external:
                raise PermissionError("External wallet sign-in is disabled")
            if self.connector is None:
                raise RuntimeError("No external wallet connector configured")
            conn = self.connector.connect_with_external_wallet(cancel_event)
        except Exception as e:
            self._fail(event, [], e)
            raise

        wallet = HexaWallet(address=conn.address, did=conn.did, chain_id=conn.chain_id)
        self._publish(event, None, wallet, conn.provider)
        return wallet

    def _materialize(self, event: IdentityEvent, secret: Optional[str],
                     chain_id: Optional[int]) -> HexaWallet:
        self.storage.initialize(event.uid)
        created: list[str] = []

        try:
            secret = self._resolve_secret(event, secret)

            if self.attestation.execute(secret):
                created.append(ATTESTATION_KEY)

            # Secret under uid, so it need not be re-entered in this storage scope
            self.storage.set_item(SECRET_KEY, self.cipher.encrypt(event.uid, secret))
            created.append(SECRET_KEY)

            stored = self.storage.get_item(PRIVATE_KEY_KEY)
            if stored is not None:
                self.session.state = LifecycleState.RESTORING
                private_key = self.cipher.decrypt(secret, stored)
                wallet = restore_from_private_key(private_key, chain_id)
                logger.info(f"Restored wallet {wallet.address} for {event.uid}")
            else:
                self.session.state = LifecycleState.GENERATING
                wallet = generate_fresh(chain_id)
                self.storage.set_item(PRIVATE_KEY_KEY, self.cipher.encrypt(secret, wallet.private_key))
                created.append(PRIVATE_KEY_KEY)
                logger.info(f"Generated wallet {wallet.address} for {event.uid}")

            if self.backup is not None:
                self.backup.maybe_export(secret)
        except Exception as e:
            self._fail(event, created, e)
            raise

        self._publish(event, secret, wallet, get_default_provider(wallet.chain_id, self.rpc_url))
        return wallet

    def _resolve_secret(self, event: IdentityEvent, secret: Optional[str]) -> str:
        if secret:
            return secret
        if self._pending_secret:
            return self._pending_secret

        encrypted_secret = self.storage.get_item(SECRET_KEY)
        if encrypted_secret is not None:
            return self.cipher.decrypt(event.uid, encrypted_secret)
        raise MissingSecretError("Secret is required to decrypt the private key")

    def _publish(self, event: IdentityEvent, secret: Optional[str],
                 wallet: HexaWallet, provider: Any) -> None:
        self._pending_secret = None
        self.session.uid = event.uid
        self.session.secret = secret
        self.session.wallet = wallet
        self.session.provider = provider
        self.session.state = LifecycleState.READY

    def _fail(self, event: IdentityEvent, created: list[str], error: Exception) -> None:
        logger.error(f"Wallet initialization failed for {event.uid}: {error}")

        # Records from this attempt only; a pre-existing key or attestation survives
        to_remove = list(reversed(created))
        if SECRET_KEY not in to_remove:
            to_remove.append(SECRET_KEY)
        for key in to_remove:
            try:
                self.storage.remove_item(key)
            except Exception as e:
                logger.warning(f"Rollback could not remove {key}: {e}")

        self._reset(LifecycleState.FAILED)

        if self.auth is not None:
            try:
                self.auth.sign_out()
            except Exception as e:
                logger.warning(f"Sign-out after failure did not complete: {e}")


_STOP = object()


class AuthEventChannel:
    """
    Feeds auth events to an orchestrator from a single worker thread.

    Events are queued in arrival order and processed one at a time.
    """

    def __init__(
        self,
        orchestrator: WalletLifecycleOrchestrator,
        auth: AuthProvider,
        on_result: Optional[Callable[[Optional[dict]], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.orchestrator = orchestrator
        self.auth = auth
        self.on_result = on_result
        self.on_error = on_error
        self.cancel_event = threading.Event()
        self._queue: queue.Queue = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self.cancel_event.clear()
        self._unsubscribe = self.auth.get_on_auth_state_changed(self._queue.put)
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Unsubscribe, abandon a pending external connection and stop the worker."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.cancel_event.set()
        if self._thread is not None:
            self._queue.put(_STOP)
            self._thread.join(timeout)
            self._thread = None

    def wait_idle(self) -> None:
        """Block until every queued event has been processed."""
        self._queue.join()

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            try:
                if event is _STOP:
                    return
                self._handle(event)
            finally:
                self._queue.task_done()

    def _handle(self, event: Optional[IdentityEvent]) -> None:
        try:
            wallet = self.orchestrator.init_wallet(event, cancel_event=self.cancel_event)
        except Exception as e:
            if self.on_error is not None:
                self.on_error(e)
            else:
                logger.error(f"Unhandled wallet lifecycle error: {e}")
            return

        if self.on_result is not None:
            try:
                self.on_result(wallet.user_info() if wallet else None)
            except Exception as e:
                logger.error(f"Connect state callback failed: {e}", exc_info=True)
