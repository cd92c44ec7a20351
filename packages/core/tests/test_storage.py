"""Tests for the local snapshot and price cache store."""

import json

import pytest

from zakat_core.exceptions import StorageError
from zakat_core.models import PersistedSnapshot, PriceCacheEntry
from zakat_core.storage import (
    PRICE_CACHE_KEY,
    SNAPSHOT_KEY,
    LocalStore,
    snapshot_from_raw,
)


@pytest.fixture
def store(tmp_path) -> LocalStore:
    return LocalStore(tmp_path / "data")


class TestLocalStore:
    """Test suite for the raw key/value operations."""

    def test_missing_key_reads_none(self, store):
        assert store.read("absent") is None
        assert store.get("absent") is None

    def test_write_then_read(self, store):
        """Values are stored as one JSON file per key."""
        store.write("thing", {"a": 1})

        assert store.read("thing") == {"a": 1}
        assert store.path_for("thing").name == "thing.json"
        assert not store.path_for("thing").with_name("thing.json.tmp").exists()

    def test_write_overwrites(self, store):
        store.write("thing", {"a": 1})
        store.write("thing", {"b": 2})

        assert store.read("thing") == {"b": 2}

    def test_non_finite_floats_written_as_null(self, store):
        store.write("thing", {"x": float("nan"), "y": [float("inf"), 1.5]})

        assert store.read("thing") == {"x": None, "y": [None, 1.5]}

    def test_corrupt_file_raises_on_read(self, store):
        """read() surfaces the fault; get() logs it and returns None."""
        store.directory.mkdir(parents=True)
        store.path_for("thing").write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageError) as exc_info:
            store.read("thing")

        assert exc_info.value.details["operation"] == "read"
        assert exc_info.value.details["key"] == "thing"
        assert store.get("thing") is None

    def test_empty_file_reads_none(self, store):
        store.directory.mkdir(parents=True)
        store.path_for("thing").write_text("  \n", encoding="utf-8")

        assert store.read("thing") is None

    def test_unwritable_location(self, tmp_path):
        """A storage directory that cannot be created fails softly through set()."""
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory", encoding="utf-8")
        store = LocalStore(blocker / "data")

        with pytest.raises(StorageError):
            store.write("thing", {"a": 1})

        assert store.set("thing", {"a": 1}) is False

    def test_remove(self, store):
        store.write("thing", {"a": 1})

        assert store.remove("thing") is True
        assert store.read("thing") is None
        assert store.remove("thing") is True


class TestSnapshotPersistence:
    """Test suite for the worksheet snapshot."""

    def test_round_trip(self, store):
        snapshot = PersistedSnapshot(
            data={"savings": 8000.5, "bond_interest": 40.0},
            nisab_price=0.95,
            held_one_year=True,
            use_gregorian=False,
        )

        assert store.save_snapshot(snapshot) is True

        assert store.load_snapshot() == snapshot

    def test_on_disk_format(self, store):
        """The snapshot is written with camelCase keys under its fixed name."""
        store.save_snapshot(PersistedSnapshot(data={"savings": 10.0}, nisab_price=0.9))

        raw = json.loads(store.path_for(SNAPSHOT_KEY).read_text(encoding="utf-8"))

        assert store.path_for(SNAPSHOT_KEY).name == "zakat-calculator-data.json"
        assert raw == {
            "data": {"savings": 10.0},
            "nisabPrice": 0.9,
            "heldOneYear": False,
            "useGregorian": False,
        }

    def test_absent_snapshot(self, store):
        assert store.load_snapshot() is None

    def test_corrupt_snapshot_falls_back(self, store):
        """A malformed snapshot is treated as no snapshot."""
        store.directory.mkdir(parents=True)
        store.path_for(SNAPSHOT_KEY).write_text("][", encoding="utf-8")

        assert store.load_snapshot() is None

    def test_loose_values_are_coerced(self, store):
        """Hand-edited or older snapshots are coerced field by field."""
        store.write(SNAPSHOT_KEY, {
            "data": {"savings": "1,200", "gold": None, "checking": -3},
            "nisabPrice": "0.95",
            "heldOneYear": 1,
        })

        snapshot = store.load_snapshot()

        assert snapshot.data == {"savings": 1200.0, "gold": 0.0, "checking": 0.0}
        assert snapshot.nisab_price == 0.95
        assert snapshot.held_one_year is True
        assert snapshot.use_gregorian is False

    def test_clear_snapshot(self, store):
        store.save_snapshot(PersistedSnapshot(nisab_price=0.9))

        store.clear_snapshot()

        assert not store.path_for(SNAPSHOT_KEY).exists()
        assert store.load_snapshot() is None

    @pytest.mark.parametrize("raw", [None, [], "text", 3])
    def test_non_object_payload(self, raw):
        assert snapshot_from_raw(raw) is None

    def test_non_object_data_ignored(self):
        snapshot = snapshot_from_raw({"data": ["savings"], "nisabPrice": 1})

        assert snapshot.data == {}
        assert snapshot.nisab_price == 1.0


class TestPriceCache:
    """Test suite for the price cache entry."""

    def test_round_trip(self, store):
        entry = PriceCacheEntry(price_per_gram=0.9645, silver_per_oz=30.0, fetched_at=1_700_000_000_000)

        store.save_price_cache(entry)

        assert store.load_price_cache() == entry
        assert store.path_for(PRICE_CACHE_KEY).name == "zakat-silver-price.json"

    def test_on_disk_keys(self, store):
        store.save_price_cache(PriceCacheEntry(price_per_gram=1.0, fetched_at=5))

        raw = store.read(PRICE_CACHE_KEY)

        assert raw == {"pricePerGram": 1.0, "silverPerOz": 0.0, "fetchedAt": 5}

    def test_invalid_cache_ignored(self, store):
        """A cache entry missing required keys is treated as absent."""
        store.write(PRICE_CACHE_KEY, {"pricePerGram": "lots"})

        assert store.load_price_cache() is None
