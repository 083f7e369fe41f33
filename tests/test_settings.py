import json
import logging
from datetime import datetime, timedelta

import pytest

from hexa_connect.networks import DEFAULT_NETWORK, get_network_by_name, resolve_network
from hexa_connect.services.logging import DailyFileHandler, cleanup_old_logs, get_log_file_path
from hexa_connect.settings import ConnectSettings, load_settings, save_settings
from hexa_connect.utils import get_logs_dir, get_storage_path
from hexa_connect.wallet.cipher import FAST_KDF


def test_defaults_when_missing(hexa_home):
    settings = load_settings()
    assert settings.chain_id == DEFAULT_NETWORK
    assert settings.kdf == "default"
    assert settings.resolved_storage_path() == get_storage_path()
    assert get_storage_path().parent == hexa_home


def test_roundtrip(tmp_path):
    path = tmp_path / "settings.json"
    save_settings(ConnectSettings(chain_id=137, kdf="fast", log_level="DEBUG"), path)
    settings = load_settings(path)
    assert settings.chain_id == 137
    assert settings.kdf_params == FAST_KDF
    assert settings.log_level == "DEBUG"


def test_unknown_keys_ignored():
    settings = ConnectSettings.from_dict({"chain_id": 8453, "theme": "dark"})
    assert settings.chain_id == 8453


@pytest.mark.parametrize("data", [
    {"chain_id": 0},
    {"chain_id": "1"},
    {"kdf": "scrypt"},
    {"log_level": "LOUD"},
    {"log_retention_days": -1},
    {"enabled_signin_methods": ["connect-fax"]},
])
def test_invalid_values_rejected(data):
    with pytest.raises(ValueError):
        ConnectSettings.from_dict(data)


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{oops")
    assert load_settings(path) == ConnectSettings()
    path.write_text(json.dumps([1, 2]))
    assert load_settings(path) == ConnectSettings()


def test_network_lookup():
    assert get_network_by_name("base").chain_id == 8453
    assert resolve_network(999999).chain_id == DEFAULT_NETWORK


def test_daily_log_file(hexa_home):
    handler = DailyFileHandler(retention_days=7)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.emit(logging.makeLogRecord({"msg": "hello"}))

    path = get_log_file_path()
    assert path.parent == get_logs_dir()
    assert path.read_text() == "hello\n"


def test_cleanup_old_logs(hexa_home):
    old = get_log_file_path(datetime.now() - timedelta(days=30))
    old.write_text("old\n")
    recent = get_log_file_path()
    recent.write_text("new\n")
    (get_logs_dir() / "hexa-notadate.log").write_text("?")

    assert cleanup_old_logs(7) == 1
    assert not old.exists()
    assert recent.exists()


def test_external_wallet_method_toggle():
    assert ConnectSettings().external_wallet_enabled
    settings = ConnectSettings.from_dict({"enabled_signin_methods": ["connect-google"]})
    assert not settings.external_wallet_enabled
