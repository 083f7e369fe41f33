import json

import pytest

from hexa_connect.wallet.attestation import ATTESTATION_KEY, PasswordAttestation
from hexa_connect.wallet.cipher import FAST_KDF
from hexa_connect.wallet.errors import DecryptionError, InvalidSecretError


@pytest.fixture
def attestation(storage):
    storage.initialize("U")
    return PasswordAttestation(storage, FAST_KDF)


def test_first_secret_is_attested(attestation, storage):
    assert attestation.execute("correct") is True

    record = json.loads(storage.get_item(ATTESTATION_KEY))
    assert "correct" not in storage.get_item(ATTESTATION_KEY)
    assert record["version"] == 1
    assert len(record["mac"]) == 64


def test_returning_secret_is_verified(attestation):
    attestation.execute("correct")
    assert attestation.execute("correct") is False


def test_wrong_secret_is_rejected(attestation, storage):
    attestation.execute("correct")
    before = storage.get_item(ATTESTATION_KEY)

    with pytest.raises(InvalidSecretError):
        attestation.execute("wrong")
    assert storage.get_item(ATTESTATION_KEY) == before


def test_empty_secret_is_rejected(attestation, storage):
    with pytest.raises(InvalidSecretError):
        attestation.execute("")
    assert not attestation.has_record()


def test_records_are_per_identity(attestation, storage):
    attestation.execute("alice-secret")
    storage.initialize("V")
    assert attestation.execute("bob-secret") is True


def test_malformed_record(attestation, storage):
    storage.set_item(ATTESTATION_KEY, "{not json")
    with pytest.raises(DecryptionError):
        attestation.execute("correct")

    storage.set_item(ATTESTATION_KEY, json.dumps({"version": 1, "kdf": {}, "mac": "00"}))
    with pytest.raises(DecryptionError):
        attestation.execute("correct")


@pytest.mark.parametrize("field, value", [("time_cost", -1), ("memory_cost", 2**40), ("parallelism", 0)])
def test_record_with_unusable_kdf_costs(attestation, storage, field, value):
    attestation.execute("correct")
    record = json.loads(storage.get_item(ATTESTATION_KEY))
    record["kdf"][field] = value
    storage.set_item(ATTESTATION_KEY, json.dumps(record))

    with pytest.raises(DecryptionError):
        attestation.execute("correct")


def test_remove(attestation):
    attestation.execute("correct")
    attestation.remove()
    assert not attestation.has_record()
    assert attestation.execute("another") is True
