"""
Session model.

Identity events coming from the auth provider and the in-memory state
owned by one wallet lifecycle orchestrator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from hexa_connect.wallet.crypto import HexaWallet


@dataclass(frozen=True)
class IdentityEvent:
    """An authenticated user, as reported by the auth provider."""
    uid: str
    is_anonymous: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "IdentityEvent":
        uid = data.get("uid")
        if not uid or not isinstance(uid, str):
            raise ValueError(f"uid must be a non-empty string, got {uid!r}")
        return cls(uid=uid, is_anonymous=bool(data.get("isAnonymous", data.get("is_anonymous", False))))


class LifecycleState(Enum):
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    RESTORING = "restoring"
    GENERATING = "generating"
    DELEGATING_EXTERNAL = "delegating_external"
    READY = "ready"
    FAILED = "failed"


@dataclass
class SessionState:
    """
    Secret, wallet and provider for the active identity.

    Always replaced or cleared as a whole so that wallet fields from one
    identity are never visible alongside another identity.
    """
    state: LifecycleState = LifecycleState.IDLE
    uid: Optional[str] = None
    secret: Optional[str] = field(default=None, repr=False)
    wallet: Optional[HexaWallet] = None
    provider: Any = None

    @property
    def is_ready(self) -> bool:
        return self.state is LifecycleState.READY and self.wallet is not None

    def clear(self, provider: Any = None) -> None:
        """Drop the secret and every wallet field."""
        if self.wallet is not None:
            self.wallet.lock()
        self.uid = None
        self.secret = None
        self.wallet = None
        self.provider = provider
