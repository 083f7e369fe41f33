"""
Wallet package - Key material for Hexa Connect.

Contains:
- SecretCipher: AES-256-GCM encryption keyed by a secret (Argon2id)
- HexaWallet: In-memory wallet (BIP-39/44 derivation, did:ethr)
- PasswordAttestation: First-use attestation / verification of a secret
- Errors: the wallet error taxonomy
"""

from .cipher import (
    SecretCipher,
    KdfParams,
    DEFAULT_KDF,
    FAST_KDF,
    KDF_PROFILES,
)
from .crypto import (
    HexaWallet,
    generate_fresh,
    restore_from_private_key,
    generate_did,
)
from .attestation import PasswordAttestation, ATTESTATION_KEY
from .errors import (
    WalletError,
    DecryptionError,
    InvalidSecretError,
    InvalidMnemonicError,
    InvalidKeyError,
    MissingSecretError,
)

__all__ = [
    # Cipher
    "SecretCipher",
    "KdfParams",
    "DEFAULT_KDF",
    "FAST_KDF",
    "KDF_PROFILES",
    # Materializer
    "HexaWallet",
    "generate_fresh",
    "restore_from_private_key",
    "generate_did",
    # Attestation
    "PasswordAttestation",
    "ATTESTATION_KEY",
    # Errors
    "WalletError",
    "DecryptionError",
    "InvalidSecretError",
    "InvalidMnemonicError",
    "InvalidKeyError",
    "MissingSecretError",
]
