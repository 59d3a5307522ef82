from core.data.store import Store
from core.models.rules import CrisisState


def test_raw_roundtrip_and_keys(store):
    store.put_raw("b", {"x": 1})
    store.put_raw("a", "zero-rate")

    assert store.get_raw("b") == {"x": 1}
    assert store.get_raw("a") == "zero-rate"
    assert store.keys() == ["a", "b"]


def test_missing_key_reads_none(store):
    assert store.get_raw("nope") is None
    assert store.get_model("nope", CrisisState) is None


def test_malformed_json_reads_none(store, caplog):
    store.db.execute(
        "INSERT INTO kv_state (key, value, updated_at) VALUES (?, ?, ?)",
        ("crisis_state", "{not json", "2025-01-01T00:00:00+00:00"),
    )
    store.db.commit()

    assert store.get_raw("crisis_state") is None
    assert "crisis_state" in caplog.text


def test_invalid_model_reads_none(store):
    store.put_raw("crisis_state", {"is_active": False, "drop_count": 3})
    assert store.get_model("crisis_state", CrisisState) is None


def test_delete_and_clear(store):
    store.put_raw("a", 1)
    store.put_raw("b", 2)

    assert store.delete("a")
    assert not store.delete("a")
    store.clear_all()
    assert store.keys() == []


def test_records_survive_reopen(tmp_path):
    first = Store(tmp_path)
    first.put_model("crisis_state", CrisisState())
    first.close()

    second = Store(tmp_path)
    try:
        assert second.get_model("crisis_state", CrisisState) == CrisisState()
        assert second.path == tmp_path / "state.sqlite"
    finally:
        second.close()
