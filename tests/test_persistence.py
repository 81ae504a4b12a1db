"""
Persistence Tests

Save / load round trips through the in-memory and SQL stores, the flat
key layout, tolerance of missing or bad entries, and failure handling.
"""

import warnings

import pytest

from brick_core import DEFAULT_MATERIALS, DEFAULT_SETTINGS
from brick_core.engine import ConversionEngine
from brick_core.store import InMemoryStore, KeyValueEntry, PersistenceUnavailable, SQLStore, open_store


def _mutate(engine):
    engine.update_value("Sawdust", 13.75)
    engine.update_value("E-waste", 0.0)
    engine.import_quantities({"plastic_shreds": 3.5})
    engine.update_setting("brickMass", 2.5)
    engine.update_setting("landfillArea", 420.0)


# ==================== KEY LAYOUT ====================

class TestSave:

    def test_flat_keys(self, memory_store):
        engine = ConversionEngine(store=memory_store)
        engine.save()

        expected = {f"value:{label}" for label, _ in DEFAULT_MATERIALS} | set(DEFAULT_SETTINGS)
        assert set(memory_store.entries) == expected
        assert memory_store.entries["value:Straws / fibers"] == 1.0
        assert memory_store.entries["landfillDepth"] == 2.0

    def test_mutations_auto_save(self, stored_engine, memory_store):
        stored_engine.update_value("Sand", 7.0)
        stored_engine.update_setting("brickVolume", 0.003)

        assert memory_store.entries["value:Sand"] == 7.0
        assert memory_store.entries["brickVolume"] == 0.003

    def test_rejected_mutation_not_saved(self, stored_engine, memory_store):
        stored_engine.update_value("Sand", 7.0)
        stored_engine.update_setting("brickMass", -1)

        assert memory_store.entries["brickMass"] == 2.0

    def test_reset_saved(self, stored_engine, memory_store):
        stored_engine.update_value("Sand", 7.0)
        stored_engine.reset_to_defaults()

        assert memory_store.entries["value:Sand"] == 0.5

    def test_no_store_attached(self, engine):
        with pytest.raises(PersistenceUnavailable):
            engine.save()
        with pytest.raises(PersistenceUnavailable):
            engine.load()


# ==================== ROUND TRIP ====================

class TestRoundTrip:

    def test_in_memory_round_trip(self, memory_store):
        original = ConversionEngine(store=memory_store)
        _mutate(original)
        original.save()

        restored = ConversionEngine(store=memory_store)
        restored.load()

        assert restored.ordered_entries() == original.ordered_entries()
        assert restored.settings == original.settings

    def test_sql_round_trip(self, sql_store):
        original = ConversionEngine(store=sql_store)
        _mutate(original)
        original.save()

        restored = ConversionEngine(store=sql_store)
        restored.load()

        assert restored.ordered_entries() == original.ordered_entries()
        assert restored.settings == original.settings
        assert restored.bricks_producible() == original.bricks_producible()

    def test_sql_overwrites_existing_keys(self, sql_store):
        sql_store.set("brickMass", 2.0)
        sql_store.set("brickMass", 4.0)

        assert sql_store.get("brickMass") == 4.0
        assert sql_store.get("value:Glass") is None

    def test_timestamps_use_aware_utc(self, sql_store):
        with warnings.catch_warnings():
            warnings.filterwarnings("error", message=".*utcnow.*")
            sql_store.set("landfillArea", 250.0)

        with sql_store.SessionLocal() as db:
            entry = db.get(KeyValueEntry, "landfillArea")
            assert entry.value == 250.0
            assert entry.updated_at is not None


# ==================== LOAD TOLERANCE ====================

class TestLoad:

    def test_missing_entries_keep_defaults(self):
        store = InMemoryStore({"value:Sawdust": 9.0, "landfillDepth": 4.0})
        engine = ConversionEngine(store=store)
        engine.load()

        assert engine.values["Sawdust"] == 9.0
        assert engine.values["Sand"] == 0.5
        assert engine.landfill_depth == 4.0
        assert engine.brick_mass == 2.0

    def test_invalid_entries_ignored(self):
        store = InMemoryStore({"value:Sand": -5.0, "brickMass": 0.0, "brickVolume": -1.0})
        store.entries["value:Other"] = float("nan")
        engine = ConversionEngine(store=store)
        engine.load()

        assert engine.values["Sand"] == 0.0
        assert engine.values["Other"] == 0.3
        assert engine.brick_mass == 2.0
        assert engine.brick_volume == 0.002

    def test_unknown_stored_keys_ignored(self):
        store = InMemoryStore({"value:Glass": 3.0})
        engine = ConversionEngine(store=store)
        engine.load()

        assert "Glass" not in engine.values

    def test_single_notification(self, memory_store):
        engine = ConversionEngine(store=memory_store)
        engine.save()
        calls = []
        engine.subscribe(lambda e: calls.append(1))

        engine.load()

        assert calls == [1]


# ==================== FAILURES ====================

class TestPersistenceFailure:

    def test_save_and_load_propagate(self, failing_store):
        engine = ConversionEngine(store=failing_store)

        with pytest.raises(PersistenceUnavailable):
            engine.save()
        with pytest.raises(PersistenceUnavailable):
            engine.load()

    def test_mutation_survives_auto_save_failure(self, failing_store):
        engine = ConversionEngine(store=failing_store)
        calls = []
        engine.subscribe(lambda e: calls.append(1))

        result = engine.update_value("Sawdust", 8.0)

        assert result.ok
        assert failing_store.attempts > 0
        assert engine.values["Sawdust"] == 8.0
        assert engine.bricks_producible() == 12
        assert calls == [1]

    def test_failed_load_leaves_valid_state(self, failing_store):
        engine = ConversionEngine(store=failing_store)

        with pytest.raises(PersistenceUnavailable):
            engine.load()

        assert engine.ordered_entries() == list(DEFAULT_MATERIALS)
        assert engine.total_available_waste() == pytest.approx(21.0)

    def test_sql_errors_wrapped(self, sql_store):
        with sql_store.engine.begin() as conn:
            conn.exec_driver_sql("DROP TABLE kv_entries")

        with pytest.raises(PersistenceUnavailable):
            sql_store.get("brickMass")
        with pytest.raises(PersistenceUnavailable):
            sql_store.set("brickMass", 1.0)


# ==================== OPEN STORE ====================

class TestOpenStore:

    def test_no_url_gives_memory_store(self):
        assert isinstance(open_store(None), InMemoryStore)
        assert isinstance(open_store(""), InMemoryStore)

    def test_sqlite_file(self, tmp_path):
        store = open_store(f"sqlite:///{tmp_path / 'bricks.db'}")

        assert isinstance(store, SQLStore)
        store.set("value:Sand", 1.5)
        assert store.get("value:Sand") == 1.5

    def test_unusable_url_falls_back(self):
        assert isinstance(open_store("not-a-database-url"), InMemoryStore)
