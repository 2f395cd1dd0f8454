import json

import pytest

from billcalc.configs.billing import DEFAULT_CONFIG, BillingConfig, RateTier, parse_config
from billcalc.managers import settings_store
from billcalc.managers.session_manager import BillingSession
from billcalc.managers.settings_store import JsonFileStore, MemoryStore

CUSTOM = BillingConfig(
    usage_rate_map=(RateTier(100, 2), RateTier(-1, 3)),
    vat_percentage=10,
    demand_charge=20,
)


def test_open_without_persisted_settings_uses_default():
    session = BillingSession.open(MemoryStore())
    assert session.config is DEFAULT_CONFIG


def test_open_with_malformed_settings_uses_default():
    store = MemoryStore(initial={"settings": '{"usage_rate_map": 3}'})
    session = BillingSession.open(store)
    assert session.config is DEFAULT_CONFIG


def test_replace_config_persists_and_reloads():
    store = MemoryStore()
    session = BillingSession.open(store)
    session.replace_config(CUSTOM)
    assert session.config == CUSTOM
    assert parse_config(store.load()) == CUSTOM

    reopened = BillingSession.open(store)
    assert reopened.config == CUSTOM


def test_bill_uses_live_config():
    session = BillingSession(MemoryStore(), CUSTOM)
    result = session.bill(150)
    assert result.pre_tax_total == 100 * 2 + 50 * 3 + 20
    assert result.total == 407


def test_reset_restores_default():
    store = MemoryStore()
    session = BillingSession(store, CUSTOM)
    session.reset()
    assert session.config is DEFAULT_CONFIG
    assert parse_config(store.load()) == DEFAULT_CONFIG


def test_memory_store_uses_its_key():
    store = MemoryStore(key="other")
    store.save("blob")
    assert store.data == {"other": "blob"}
    assert MemoryStore().load() is None


def test_json_file_store_missing_file(tmp_path):
    store = JsonFileStore(str(tmp_path / "settings.json"))
    assert store.load() is None


def test_json_file_store_round_trip(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"theme": "dark"}))
    store = JsonFileStore(str(path))
    store.save("opaque value")
    assert store.load() == "opaque value"
    # other keys in the store are left alone
    assert json.loads(path.read_text())["theme"] == "dark"


def test_json_file_store_corrupt_file(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{ not json")
    store = JsonFileStore(str(path))
    assert store.load() is None
    store.save("fresh")
    assert store.load() == "fresh"


def test_json_file_store_non_string_value(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"settings": {"usage_rate_map": []}}))
    assert JsonFileStore(str(path)).load() is None


def test_session_with_file_store(tmp_path):
    path = str(tmp_path / "settings.json")
    BillingSession.open(JsonFileStore(path)).replace_config(CUSTOM)
    assert BillingSession.open(JsonFileStore(path)).config == CUSTOM


def test_open_with_oversized_number_uses_default():
    blob = json.dumps({
        "usage_rate_map": [{"usage": 10**400, "rate": 1}],
        "vat_percentage": 5,
        "demand_charge": 1,
    })
    session = BillingSession.open(MemoryStore(initial={"settings": blob}))
    assert session.config is DEFAULT_CONFIG


def test_json_file_store_failed_write_leaves_no_temp_file(tmp_path, monkeypatch):
    path = tmp_path / "settings.json"
    store = JsonFileStore(str(path))
    store.save("first")

    def broken_dump(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(settings_store.json, "dump", broken_dump)
    with pytest.raises(OSError):
        store.save("second")
    assert not (tmp_path / "settings.json.tmp").exists()
    monkeypatch.undo()
    assert store.load() == "first"
