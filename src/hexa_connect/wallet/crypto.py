"""
Wallet Crypto - Wallet materialization.

- BIP-39 seed phrases
- BIP-32/44 HD derivation
- did:ethr identifiers derived from the address

Wallets only ever exist in memory; persisting them is the caller's job
(and only the encrypted private key is ever persisted).
"""

from dataclasses import dataclass, field
from typing import Optional

# Ethereum
from mnemonic import Mnemonic
from eth_account import Account
from eth_account.hdaccount import seed_from_mnemonic, key_from_seed
from eth_account.messages import encode_defunct
from eth_keys import keys

from hexa_connect.networks import resolve_network
from .errors import InvalidKeyError, InvalidMnemonicError

# Enable HD wallet features
Account.enable_unaudited_hdwallet_features()


PRIVATE_KEY_HEX_LENGTH = 64  # 32 bytes
# Seed phrase length -> entropy bits (BIP-39)
WORD_COUNT_STRENGTH = {12: 128, 15: 160, 18: 192, 21: 224, 24: 256}


def generate_did(address: str) -> str:
    """Generate a DID from an Ethereum address."""
    return f"did:ethr:{address}"


def public_key_from_private(private_key: bytes) -> str:
    """Uncompressed secp256k1 public key, 0x04-prefixed."""
    return "0x04" + keys.PrivateKey(private_key).public_key.to_bytes().hex()


def normalize_private_key(private_key_hex: str) -> bytes:
    """
    Validate a hex private key and return its raw bytes.

    Accepts keys with or without a 0x prefix.

    Raises:
        InvalidKeyError: not 32 bytes of hex, or outside the curve order
    """
    if not isinstance(private_key_hex, str):
        raise InvalidKeyError("Private key must be a hex string")

    pkey = private_key_hex.strip()
    if pkey.startswith("0x") or pkey.startswith("0X"):
        pkey = pkey[2:]

    if len(pkey) != PRIVATE_KEY_HEX_LENGTH:
        raise InvalidKeyError(
            f"Private key must be {PRIVATE_KEY_HEX_LENGTH} hex characters, got {len(pkey)}"
        )
    try:
        pkey_bytes = bytes.fromhex(pkey)
        if not any(pkey_bytes):
            raise ValueError("Private key must not be zero")
        Account.from_key(pkey_bytes)  # Validate
    except ValueError as e:
        raise InvalidKeyError("Private key is not a valid secp256k1 key") from e
    return pkey_bytes


# ============================================
# Wallet
# ============================================

@dataclass
class HexaWallet:
    """
    A materialized wallet.

    Wallets delegated to an external connector carry no private key
    (and usually no public key either).
    """
    address: str
    did: str
    chain_id: int
    public_key: Optional[str] = None
    private_key: Optional[str] = field(default=None, repr=False)
    mnemonic: Optional[str] = field(default=None, repr=False)

    @property
    def has_private_key(self) -> bool:
        return bool(self.private_key)

    def get_account(self):
        """Get an eth_account LocalAccount for signing."""
        if not self.private_key:
            raise InvalidKeyError("Private key is required to sign")
        return Account.from_key(self.private_key)

    def sign_message(self, message: str | bytes) -> str:
        """
        Sign a message with EIP-191 personal_sign.

        Returns: 0x-prefixed 65-byte signature (r + s + v)
        """
        account = self.get_account()

        if isinstance(message, bytes):
            signable = encode_defunct(primitive=message)
        else:
            signable = encode_defunct(text=message)

        signed = account.sign_message(signable)
        return "0x" + bytes(signed.signature).hex()

    def verify_signature(self, message: str | bytes, signature: str) -> bool:
        """Check that signature over message was produced by this wallet's address."""
        if isinstance(message, bytes):
            signable = encode_defunct(primitive=message)
        else:
            signable = encode_defunct(text=message)
        try:
            recovered = Account.recover_message(signable, signature=signature)
        except Exception:
            return False
        return recovered.lower() == self.address.lower()

    def user_info(self) -> dict:
        """Public fields only, safe to hand to a UI."""
        return {
            "address": self.address,
            "did": self.did,
            "publicKey": self.public_key,
        }

    def lock(self) -> None:
        """Clear sensitive material from memory."""
        self.private_key = None
        self.mnemonic = None


# ============================================
# Materialization
# ============================================

def generate_fresh(chain_id: Optional[int] = None, mnemonic: Optional[str] = None,
                   word_count: int = 12) -> HexaWallet:
    """
    Create a wallet from a fresh (or supplied) BIP-39 seed phrase.

    Args:
        chain_id: Chain whose derivation path to use (default network if unknown)
        mnemonic: Existing seed phrase to use instead of a random one
        word_count: Length of the generated seed phrase

    Raises:
        InvalidMnemonicError: the seed phrase fails checksum validation
    """
    network = resolve_network(chain_id)

    mnemo = Mnemonic("english")
    if mnemonic is None:
        if word_count not in WORD_COUNT_STRENGTH:
            raise ValueError(f"word_count must be one of {sorted(WORD_COUNT_STRENGTH)}")
        mnemonic = mnemo.generate(strength=WORD_COUNT_STRENGTH[word_count])

    if not mnemo.check(mnemonic):
        raise InvalidMnemonicError("Invalid seed phrase")

    seed = seed_from_mnemonic(mnemonic, passphrase="")
    private_key = key_from_seed(seed, network.derivation_path)
    account = Account.from_key(private_key)

    return HexaWallet(
        address=account.address,
        did=generate_did(account.address),
        chain_id=network.chain_id,
        public_key=public_key_from_private(private_key),
        private_key="0x" + private_key.hex(),
        mnemonic=mnemonic,
    )


def restore_from_private_key(private_key_hex: str, chain_id: Optional[int] = None) -> HexaWallet:
    """
    Rebuild a wallet from a hex private key.

    Raises:
        InvalidKeyError: key is not 32 bytes of valid hex
    """
    network = resolve_network(chain_id)
    pkey_bytes = normalize_private_key(private_key_hex)
    account = Account.from_key(pkey_bytes)

    return HexaWallet(
        address=account.address,
        did=generate_did(account.address),
        chain_id=network.chain_id,
        public_key=public_key_from_private(pkey_bytes),
        private_key="0x" + pkey_bytes.hex(),
    )
