import threading

import pytest

from hexa_connect.models.store import MemoryStorage
from hexa_connect.services.backup import BackupExporter, BackupRequestStore
from hexa_connect.services.lifecycle import WalletLifecycleOrchestrator
from hexa_connect.services.providers import ExternalConnection, ExternalWalletConnector, LocalAuthProvider
from hexa_connect.wallet.cipher import FAST_KDF, SecretCipher
from hexa_connect.wallet.crypto import generate_did


# Well-known development mnemonic (Hardhat / Anvil account #0)
TEST_MNEMONIC = "test test test test test test test test test test test junk"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"


@pytest.fixture(autouse=True)
def hexa_home(tmp_path, monkeypatch):
    """Keep every test's app directory inside tmp_path."""
    home = tmp_path / "home"
    monkeypatch.setenv("HEXA_HOME", str(home))
    return home


@pytest.fixture
def cipher():
    return SecretCipher(FAST_KDF)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def auth():
    return LocalAuthProvider()


@pytest.fixture
def flags(tmp_path):
    return BackupRequestStore(tmp_path / "backup-request.json")


@pytest.fixture
def export_dir(tmp_path):
    return tmp_path / "exports"


@pytest.fixture
def exporter(storage, cipher, flags, export_dir):
    return BackupExporter(storage, cipher, flags, export_dir)


class FakeConnector(ExternalWalletConnector):
    """External wallet that answers immediately (or waits for release)."""

    def __init__(self, address=TEST_ADDRESS, chain_id=1, block=False):
        self.address = address
        self.chain_id = chain_id
        self.calls = 0
        self.entered = threading.Event()
        self.release = threading.Event()
        if not block:
            self.release.set()

    def connect_with_external_wallet(self, cancel_event=None):
        self.calls += 1
        self.entered.set()
        while not self.release.wait(0.01):
            if cancel_event is not None and cancel_event.is_set():
                raise ConnectionError("cancelled")
        return ExternalConnection(
            address=self.address,
            did=generate_did(self.address),
            chain_id=self.chain_id,
            provider="external-provider",
        )


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def orchestrator(storage, cipher, auth, connector, exporter):
    return WalletLifecycleOrchestrator(
        storage=storage,
        cipher=cipher,
        auth=auth,
        connector=connector,
        backup=exporter,
        chain_id=1,
    )
