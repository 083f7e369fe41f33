"""
Secret Cipher - Authenticated encryption keyed by an arbitrary secret.

- Argon2id key derivation (memory-hard)
- AES-256-GCM authenticated encryption
- Fresh salt and IV on every call

The output is a compact JSON string that carries everything needed to
decrypt it except the secret itself.
"""

import json
import secrets
from dataclasses import dataclass, asdict

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from argon2.exceptions import HashingError
from argon2.low_level import hash_secret_raw, Type

from .errors import DecryptionError


# ============================================
# Security Constants
# ============================================

BLOB_VERSION = 1

SALT_SIZE = 16
AES_KEY_SIZE = 32
AES_IV_SIZE = 12  # 96 bits (recommended for GCM)
AES_TAG_SIZE = 16

UINT32_MAX = 2**32 - 1


@dataclass(frozen=True)
class KdfParams:
    """Argon2id cost parameters."""
    time_cost: int = 3
    memory_cost: int = 65536  # 64 MB
    parallelism: int = 4

    def to_dict(self) -> dict:
        return {"algorithm": "argon2id", **asdict(self)}

    @classmethod
    def from_dict(cls, data: dict) -> "KdfParams":
        """
        Read parameters stored alongside a blob.

        Raises:
            ValueError: unknown algorithm, or a cost Argon2 cannot take
        """
        if data.get("algorithm", "argon2id") != "argon2id":
            raise ValueError(f"Unsupported KDF: {data.get('algorithm')}")
        values = {}
        for name in ("time_cost", "memory_cost", "parallelism"):
            value = data[name]
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if not 1 <= value <= UINT32_MAX:
                raise ValueError(f"{name} out of range: {value}")
            values[name] = value
        return cls(**values)


# OWASP recommendations for high-security
DEFAULT_KDF = KdfParams()

# Minimum Argon2 allows; only for tests and throwaway data
FAST_KDF = KdfParams(time_cost=1, memory_cost=1024, parallelism=1)

KDF_PROFILES = {
    "default": DEFAULT_KDF,
    "fast": FAST_KDF,
}


def derive_key(secret: str, salt: bytes, params: KdfParams = DEFAULT_KDF) -> bytes:
    """Derive a 256-bit key from a secret string using Argon2id."""
    return hash_secret_raw(
        secret=secret.encode('utf-8'),
        salt=salt,
        time_cost=params.time_cost,
        memory_cost=params.memory_cost,
        parallelism=params.parallelism,
        hash_len=AES_KEY_SIZE,
        type=Type.ID
    )


class SecretCipher:
    """
    Encrypt and decrypt strings under a secret string.

    Usage:
        cipher = SecretCipher()
        blob = cipher.encrypt("my-password", "0xabc...")
        plaintext = cipher.decrypt("my-password", blob)

    Instances hold no mutable state and may be shared between threads.
    """

    def __init__(self, kdf: KdfParams = DEFAULT_KDF):
        self.kdf = kdf

    def encrypt(self, key: str, plaintext: str) -> str:
        """Encrypt plaintext under key. Returns an opaque blob string."""
        if not key:
            raise ValueError("A non-empty key is required for encryption")

        salt = secrets.token_bytes(SALT_SIZE)
        iv = secrets.token_bytes(AES_IV_SIZE)
        aesgcm = AESGCM(derive_key(key, salt, self.kdf))
        ciphertext_and_tag = aesgcm.encrypt(iv, plaintext.encode('utf-8'), None)

        blob = {
            "version": BLOB_VERSION,
            "kdf": {**self.kdf.to_dict(), "salt": salt.hex()},
            "iv": iv.hex(),
            "ciphertext": ciphertext_and_tag[:-AES_TAG_SIZE].hex(),
            "tag": ciphertext_and_tag[-AES_TAG_SIZE:].hex(),
        }
        return json.dumps(blob, separators=(',', ':'))

    def decrypt(self, key: str, blob: str) -> str:
        """
        Decrypt a blob produced by encrypt().

        Raises:
            DecryptionError: wrong key, tampered data or malformed blob
        """
        if not key:
            raise DecryptionError("A non-empty key is required for decryption")

        try:
            data = json.loads(blob)
            if data.get("version") != BLOB_VERSION:
                raise ValueError(f"Unsupported blob version: {data.get('version')}")
            params = KdfParams.from_dict(data["kdf"])
            salt = bytes.fromhex(data["kdf"]["salt"])
            iv = bytes.fromhex(data["iv"])
            ciphertext_and_tag = bytes.fromhex(data["ciphertext"]) + bytes.fromhex(data["tag"])
        except (TypeError, KeyError, AttributeError, ValueError) as e:
            raise DecryptionError("Encrypted data is malformed") from e

        try:
            aesgcm = AESGCM(derive_key(key, salt, params))
            plaintext = aesgcm.decrypt(iv, ciphertext_and_tag, None)
            return plaintext.decode('utf-8')
        except (InvalidTag, HashingError, OverflowError, ValueError) as e:
            raise DecryptionError("Wrong secret or corrupted data") from e

