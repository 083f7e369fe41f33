"""
Collaborator interfaces.

- AuthProvider: source of identity events (sign-in / sign-out)
- ExternalWalletConnector: wallet the user already controls elsewhere

Plus two concrete implementations: an in-process auth event source and
a connector that talks EIP-1193 style JSON-RPC to a web3 provider.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from web3 import Web3

from hexa_connect.models.session import IdentityEvent
from hexa_connect.networks import resolve_network
from hexa_connect.wallet.crypto import generate_did

logger = logging.getLogger(__name__)


AuthCallback = Callable[[Optional[IdentityEvent]], None]
Unsubscribe = Callable[[], None]


# ============================================
# Auth
# ============================================

class AuthProvider(ABC):
    """Interface for the identity provider."""

    @abstractmethod
    def initialize(self, config: Optional[dict] = None) -> None:
        """Configure the provider (API keys etc)."""

    @abstractmethod
    def get_on_auth_state_changed(self, cb: AuthCallback) -> Unsubscribe:
        """Subscribe to sign-in/sign-out events. Returns an unsubscribe function."""

    @abstractmethod
    def sign_out(self) -> None:
        """Sign the current user out (emits a None event)."""


class LocalAuthProvider(AuthProvider):
    """
    In-process auth event source.

    Delivers events synchronously, in order, to every subscriber.
    """

    def __init__(self):
        self.config: dict = {}
        self.current_user: Optional[IdentityEvent] = None
        self._subscribers: list[AuthCallback] = []
        self._lock = threading.Lock()

    def initialize(self, config: Optional[dict] = None) -> None:
        self.config = dict(config or {})

    def get_on_auth_state_changed(self, cb: AuthCallback) -> Unsubscribe:
        with self._lock:
            self._subscribers.append(cb)

        def unsubscribe() -> None:
            with self._lock:
                if cb in self._subscribers:
                    self._subscribers.remove(cb)

        return unsubscribe

    def _emit(self, event: Optional[IdentityEvent]) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for cb in subscribers:
            cb(event)

    def sign_in(self, uid: str, is_anonymous: bool = False) -> IdentityEvent:
        """Sign a user in and notify subscribers."""
        event = IdentityEvent(uid=uid, is_anonymous=is_anonymous)
        self.current_user = event
        logger.info(f"Signed in {'anonymous ' if is_anonymous else ''}user {uid}")
        self._emit(event)
        return event

    def sign_out(self) -> None:
        if self.current_user is None:
            return
        logger.info(f"Signed out user {self.current_user.uid}")
        self.current_user = None
        self._emit(None)


# ============================================
# External wallets
# ============================================

@dataclass
class ExternalConnection:
    """Result of connecting a wallet the app holds no keys for."""
    address: str
    did: str
    chain_id: int
    provider: Any = None


class ExternalWalletConnector(ABC):
    """Interface for connecting a user-controlled external wallet."""

    @abstractmethod
    def connect_with_external_wallet(self, cancel_event: Optional[threading.Event] = None) -> ExternalConnection:
        """
        Connect and return the wallet's public identity.

        May block for as long as the user takes to approve. There is no
        internal timeout; set cancel_event to abandon the attempt.
        """


class ConnectionCancelled(Exception):
    """External wallet connection was abandoned by the caller."""


class Web3WalletConnector(ExternalWalletConnector):
    """Connect through a web3 provider that manages its own accounts."""

    def __init__(self, provider, chain_id: Optional[int] = None):
        """
        Args:
            provider: web3 provider (anything with make_request)
            chain_id: Chain to ask the wallet to switch to (default network if None)
        """
        self.provider = provider
        self.network = resolve_network(chain_id)

    def _request(self, method: str, params: list) -> Any:
        response = self.provider.make_request(method, params)
        if response.get("error"):
            error = response["error"]
            message = error.get("message") if isinstance(error, dict) else error
            raise ConnectionError(f"{method} failed: {message}")
        return response.get("result")

    def connect_with_external_wallet(self, cancel_event: Optional[threading.Event] = None) -> ExternalConnection:
        def check_cancelled():
            if cancel_event is not None and cancel_event.is_set():
                raise ConnectionCancelled("External wallet connection cancelled")

        check_cancelled()
        accounts = self._request("eth_requestAccounts", [])
        check_cancelled()
        if not accounts:
            raise ConnectionError("No account returned by the external wallet")

        # Switching chains is a courtesy; the wallet may refuse
        try:
            self._request("wallet_switchEthereumChain", [{"chainId": hex(self.network.chain_id)}])
        except Exception as e:
            logger.warning(f"Could not switch external wallet to chain {self.network.chain_id}: {e}")

        chain_id_hex = self._request("eth_chainId", [])
        chain_id = int(chain_id_hex, 16) if isinstance(chain_id_hex, str) else int(chain_id_hex)
        check_cancelled()

        address = Web3.to_checksum_address(accounts[0])
        logger.info(f"Connected external wallet {address} on chain {chain_id}")
        return ExternalConnection(
            address=address,
            did=generate_did(address),
            chain_id=chain_id,
            provider=Web3(self.provider),
        )
