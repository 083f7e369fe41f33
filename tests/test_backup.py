import json
import re

import pytest

from conftest import TEST_ADDRESS, TEST_PRIVATE_KEY
from hexa_connect.models.store import PRIVATE_KEY_KEY
from hexa_connect.services.backup import BackupRequestStore, backup_filename
from hexa_connect.wallet.errors import DecryptionError, InvalidKeyError, MissingSecretError


@pytest.fixture
def stored_key(storage, cipher):
    blob = cipher.encrypt("pw1", TEST_PRIVATE_KEY)
    storage.set_item(PRIVATE_KEY_KEY, blob)
    return blob


def test_filename_format():
    assert re.fullmatch(r"hexa-backup-\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}\.txt", backup_filename())


def test_no_request_is_noop(exporter, stored_key, export_dir):
    assert exporter.maybe_export("pw1") is None
    assert not export_dir.exists() or not any(export_dir.iterdir())


def test_encrypted_backup_exports_blob_and_clears_flag(exporter, flags, stored_key):
    flags.request(with_encryption=True)

    path = exporter.maybe_export()

    assert path.name.startswith("hexa-backup-")
    assert path.read_text() == stored_key
    assert flags.pending() is None
    assert exporter.maybe_export() is None


def test_plain_backup_decrypts(exporter, flags, stored_key):
    flags.request(with_encryption=False)
    path = exporter.maybe_export("pw1")
    assert path.read_text() == TEST_PRIVATE_KEY


def test_plain_backup_needs_secret(exporter, flags, stored_key):
    flags.request(with_encryption=False)
    with pytest.raises(MissingSecretError):
        exporter.maybe_export(None)
    # Still pending for a retry after re-authenticating
    assert flags.pending().with_encryption is False


def test_plain_backup_wrong_secret(exporter, flags, stored_key):
    flags.request(with_encryption=False)
    with pytest.raises(DecryptionError):
        exporter.maybe_export("nope")


def test_two_exports_in_same_second_do_not_collide(exporter, flags, stored_key):
    flags.request(with_encryption=True)
    first = exporter.maybe_export()
    flags.request(with_encryption=True)
    second = exporter.maybe_export()
    assert first != second
    assert second.read_text() == stored_key


def test_flag_survives_new_store_instance(tmp_path):
    path = tmp_path / "flag.json"
    BackupRequestStore(path).request(with_encryption=True)
    req = BackupRequestStore(path).pending()
    assert req.requested and req.with_encryption and req.mode == "encrypted"


def test_unreadable_flag_is_ignored(tmp_path):
    path = tmp_path / "flag.json"
    path.write_text(json.dumps({"mode": "zip"}))
    assert BackupRequestStore(path).pending() is None
    path.write_text("garbage")
    assert BackupRequestStore(path).pending() is None


def test_import_encrypted_backup(exporter, storage, cipher, tmp_path):
    backup = tmp_path / "backup.txt"
    backup.write_text(cipher.encrypt("old-pw", TEST_PRIVATE_KEY))

    wallet = exporter.import_backup(backup, "old-pw", encrypted=True, chain_id=1)

    assert wallet.address == TEST_ADDRESS
    assert cipher.decrypt("old-pw", storage.get_item(PRIVATE_KEY_KEY)) == TEST_PRIVATE_KEY


def test_import_plain_backup(exporter, storage, cipher, tmp_path):
    backup = tmp_path / "backup.txt"
    backup.write_text(TEST_PRIVATE_KEY + "\n")

    exporter.import_backup(backup, "new-pw", encrypted=False)
    assert cipher.decrypt("new-pw", storage.get_item(PRIVATE_KEY_KEY)) == TEST_PRIVATE_KEY


def test_import_refuses_to_overwrite(exporter, stored_key, tmp_path):
    backup = tmp_path / "backup.txt"
    backup.write_text(TEST_PRIVATE_KEY)
    with pytest.raises(FileExistsError):
        exporter.import_backup(backup, "pw1", encrypted=False)
    exporter.import_backup(backup, "pw1", encrypted=False, overwrite=True)


def test_import_rejects_garbage(exporter, storage, tmp_path):
    backup = tmp_path / "backup.txt"
    backup.write_text("not a key")
    with pytest.raises(InvalidKeyError):
        exporter.import_backup(backup, "pw", encrypted=False)
    assert not storage.is_existing_private_key_stored()
