"""
Password attestation.

Lets the same secret be reused across sign-ins while catching a wrong
secret before any wallet decryption is attempted. The secret itself is
never stored: only an HMAC-SHA256 of a fixed challenge, keyed by an
Argon2id derivation of the secret.
"""

import hmac
import hashlib
import json
import logging
import secrets

from argon2.exceptions import HashingError

from .cipher import DEFAULT_KDF, KdfParams, SALT_SIZE, derive_key
from .errors import DecryptionError, InvalidSecretError

logger = logging.getLogger(__name__)


ATTESTATION_KEY = "hexa-attestation"
ATTESTATION_VERSION = 1
CHALLENGE = "hexa-connect:password-attestation:v1"


def sign_challenge(secret: str, salt: bytes, params: KdfParams) -> str:
    """HMAC-SHA256 of the fixed challenge, keyed by the derived secret (hex)."""
    key = derive_key(secret, salt, params)
    return hmac.new(key, CHALLENGE.encode('utf-8'), hashlib.sha256).hexdigest()


class PasswordAttestation:
    """
    Attest a first-time secret, or verify a returning one.

    Works against whatever scope the storage provider is currently
    initialized for (one identity).
    """

    def __init__(self, storage, kdf: KdfParams = DEFAULT_KDF):
        self.storage = storage
        self.kdf = kdf

    def has_record(self) -> bool:
        return self.storage.get_item(ATTESTATION_KEY) is not None

    def execute(self, secret: str) -> bool:
        """
        Attest or verify a secret.

        Returns:
            True if a new attestation record was written, False if an
            existing one was verified.

        Raises:
            InvalidSecretError: secret does not match the stored record
            DecryptionError: stored record is malformed
        """
        if not secret:
            raise InvalidSecretError("A secret is required")

        stored = self.storage.get_item(ATTESTATION_KEY)
        if stored is None:
            salt = secrets.token_bytes(SALT_SIZE)
            record = {
                "version": ATTESTATION_VERSION,
                "kdf": {**self.kdf.to_dict(), "salt": salt.hex()},
                "mac": sign_challenge(secret, salt, self.kdf),
            }
            self.storage.set_item(ATTESTATION_KEY, json.dumps(record, separators=(',', ':')))
            logger.info("Created password attestation")
            return True

        try:
            record = json.loads(stored)
            params = KdfParams.from_dict(record["kdf"])
            salt = bytes.fromhex(record["kdf"]["salt"])
            expected = record["mac"]
            if not isinstance(expected, str) or not expected.isascii():
                raise ValueError("mac must be a hex string")
            actual = sign_challenge(secret, salt, params)
        except (TypeError, KeyError, AttributeError, ValueError, OverflowError, HashingError) as e:
            raise DecryptionError("Stored password attestation is malformed") from e

        if not hmac.compare_digest(expected, actual):
            logger.warning("Password attestation mismatch")
            raise InvalidSecretError("Wrong password")

        logger.debug("Password attestation verified")
        return False

    def remove(self) -> None:
        """Drop the attestation record (rollback of a first-time attestation)."""
        self.storage.remove_item(ATTESTATION_KEY)
