import pytest

from mnemonic import Mnemonic

from conftest import TEST_ADDRESS, TEST_MNEMONIC, TEST_PRIVATE_KEY
from hexa_connect.networks import DEFAULT_NETWORK
from hexa_connect.wallet.crypto import (
    HexaWallet,
    generate_did,
    generate_fresh,
    normalize_private_key,
    restore_from_private_key,
)
from hexa_connect.wallet.errors import InvalidKeyError, InvalidMnemonicError


def test_generate_fresh_wallet():
    wallet = generate_fresh(1)

    assert Mnemonic("english").check(wallet.mnemonic)
    assert len(wallet.mnemonic.split()) == 12
    assert wallet.address.startswith("0x") and len(wallet.address) == 42
    assert wallet.did == f"did:ethr:{wallet.address}"
    assert wallet.private_key.startswith("0x") and len(wallet.private_key) == 66
    assert wallet.public_key.startswith("0x04") and len(wallet.public_key) == 132
    assert wallet.chain_id == 1


def test_generate_fresh_is_random():
    assert generate_fresh(1).address != generate_fresh(1).address


def test_supplied_mnemonic_is_deterministic():
    wallet = generate_fresh(1, mnemonic=TEST_MNEMONIC)
    assert wallet.address == TEST_ADDRESS
    assert wallet.private_key == TEST_PRIVATE_KEY
    assert generate_fresh(1, mnemonic=TEST_MNEMONIC).public_key == wallet.public_key


def test_bad_checksum_mnemonic_rejected():
    with pytest.raises(InvalidMnemonicError):
        generate_fresh(1, mnemonic=" ".join(["abandon"] * 12))


def test_unknown_chain_falls_back_to_default():
    assert generate_fresh(999999).chain_id == DEFAULT_NETWORK


@pytest.mark.parametrize("word_count", [12, 15, 18, 21, 24])
def test_generated_phrase_length(word_count):
    wallet = generate_fresh(1, word_count=word_count)
    assert len(wallet.mnemonic.split()) == word_count
    assert Mnemonic("english").check(wallet.mnemonic)
    assert generate_fresh(1, mnemonic=wallet.mnemonic).address == wallet.address


def test_unsupported_word_count_rejected():
    with pytest.raises(ValueError):
        generate_fresh(1, word_count=13)


def test_restore_matches_generated_wallet():
    generated = generate_fresh(137)
    restored = restore_from_private_key(generated.private_key, 137)

    assert restored.address == generated.address
    assert restored.public_key == generated.public_key
    assert restored.did == generated.did
    assert restored.mnemonic is None


def test_restore_accepts_key_without_prefix():
    wallet = restore_from_private_key(TEST_PRIVATE_KEY[2:], 1)
    assert wallet.address == TEST_ADDRESS
    assert wallet.private_key == TEST_PRIVATE_KEY


@pytest.mark.parametrize("bad", [
    "",
    "0x1234",
    "0x" + "zz" * 32,
    "0x" + "ab" * 33,
    "0x" + "00" * 32,
    None,
])
def test_restore_rejects_malformed_keys(bad):
    with pytest.raises(InvalidKeyError):
        restore_from_private_key(bad, 1)


def test_normalize_private_key_returns_bytes():
    assert normalize_private_key(" " + TEST_PRIVATE_KEY + " ") == bytes.fromhex(TEST_PRIVATE_KEY[2:])


def test_sign_and_verify_message():
    wallet = restore_from_private_key(TEST_PRIVATE_KEY, 1)
    signature = wallet.sign_message("hello hexa")

    assert signature.startswith("0x") and len(signature) == 132
    assert wallet.verify_signature("hello hexa", signature)
    assert not wallet.verify_signature("hello other", signature)
    assert not wallet.verify_signature("hello hexa", "0xdeadbeef")


def test_external_wallet_cannot_sign():
    wallet = HexaWallet(address=TEST_ADDRESS, did=generate_did(TEST_ADDRESS), chain_id=1)
    assert not wallet.has_private_key
    with pytest.raises(InvalidKeyError):
        wallet.sign_message("hello")


def test_lock_clears_key_material_and_repr_hides_it():
    wallet = generate_fresh(1)
    assert wallet.private_key[2:] not in repr(wallet)

    wallet.lock()
    assert wallet.private_key is None
    assert wallet.mnemonic is None
    assert wallet.address
    assert wallet.user_info() == {"address": wallet.address, "did": wallet.did,
                                  "publicKey": wallet.public_key}
