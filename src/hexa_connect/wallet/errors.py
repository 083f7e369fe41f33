"""
Wallet errors.

All errors derive from ValueError so callers that only care about
"bad input or bad password" can keep catching ValueError.
"""


class WalletError(ValueError):
    """Base class for wallet lifecycle errors."""


class DecryptionError(WalletError):
    """Stored blob could not be decrypted (wrong key, tampered or malformed)."""


class InvalidSecretError(WalletError):
    """Secret does not match the stored password attestation."""


class InvalidMnemonicError(WalletError):
    """Mnemonic failed BIP-39 checksum validation."""


class InvalidKeyError(WalletError):
    """Private key is not 32 bytes of hex, or no key is held."""


class MissingSecretError(WalletError):
    """An operation needed the live secret but none was available."""
