"""Tests for the status record stores."""

from pathlib import Path

import pytest

from beacon.heartbeat.errors import StoreError
from beacon.heartbeat.models import EntityState
from beacon.heartbeat.store import MemoryStatusStore, SQLiteStatusStore, StatusStore
from tests.helpers import make_record


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path: Path) -> StatusStore:
    """Each store backend in turn."""
    if request.param == "memory":
        return MemoryStatusStore()
    return SQLiteStatusStore(tmp_path / "beacon.sqlite3")


class TestStatusStoreContract:
    """Behaviour every backend shares."""

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, any_store: StatusStore) -> None:
        """Test a never-stored entity reads as absent."""
        assert await any_store.get("db1") is None

    @pytest.mark.asyncio
    async def test_upsert_then_get(self, any_store: StatusStore) -> None:
        """Test upsert inserts and then replaces."""
        await any_store.upsert(make_record())
        await any_store.upsert(make_record(last_seen_at=1500, state=EntityState.DOWN, state_changed_at=1600))

        record = await any_store.get("db1")

        assert record == make_record(last_seen_at=1500, state=EntityState.DOWN, state_changed_at=1600)

    @pytest.mark.asyncio
    async def test_list_all_is_sorted(self, any_store: StatusStore) -> None:
        """Test listing returns every record ordered by name."""
        await any_store.upsert(make_record(name="web1"))
        await any_store.upsert(make_record(name="db1"))

        records = await any_store.list_all()

        assert [r.name for r in records] == ["db1", "web1"]

    @pytest.mark.asyncio
    async def test_compare_and_set_insert(self, any_store: StatusStore) -> None:
        """Test expected=None inserts only when the row does not exist."""
        assert await any_store.compare_and_set(make_record(), None) is True
        assert await any_store.compare_and_set(make_record(last_seen_at=2000), None) is False
        assert (await any_store.get("db1")).last_seen_at == 1000

    @pytest.mark.asyncio
    async def test_compare_and_set_update(self, any_store: StatusStore) -> None:
        """Test the write succeeds against the current row and fails against a stale one."""
        original = make_record()
        await any_store.upsert(original)
        updated = make_record(last_seen_at=1050)

        assert await any_store.compare_and_set(updated, original) is True
        assert await any_store.compare_and_set(make_record(last_seen_at=1100), original) is False
        assert await any_store.get("db1") == updated

    @pytest.mark.asyncio
    async def test_compare_and_set_against_missing_row(self, any_store: StatusStore) -> None:
        """Test an update based on a record that no longer exists fails."""
        assert await any_store.compare_and_set(make_record(last_seen_at=1050), make_record()) is False
        assert await any_store.get("db1") is None


class TestMemoryStatusStore:
    """Tests specific to MemoryStatusStore."""

    @pytest.mark.asyncio
    async def test_persists_to_json(self, tmp_path: Path) -> None:
        """Test records survive a reload from the JSON file."""
        path = tmp_path / "state" / "beacon.json"
        store = MemoryStatusStore(persist_path=path)
        await store.upsert(make_record(state=EntityState.DOWN, state_changed_at=1200))

        reloaded = MemoryStatusStore(persist_path=path)

        assert path.exists()
        assert await reloaded.get("db1") == make_record(state=EntityState.DOWN, state_changed_at=1200)

    @pytest.mark.asyncio
    async def test_failed_persist_rolls_back(self, tmp_path: Path) -> None:
        """Test a write that cannot be saved raises and leaves no trace."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = MemoryStatusStore(persist_path=blocker / "beacon.json")

        with pytest.raises(StoreError):
            await store.upsert(make_record())

        assert await store.get("db1") is None

    def test_corrupt_file_is_ignored(self, tmp_path: Path) -> None:
        """Test an unreadable state file starts the store empty."""
        path = tmp_path / "beacon.json"
        path.write_text("{not json")

        store = MemoryStatusStore(persist_path=path)

        assert store._records == {}


class TestSQLiteStatusStore:
    """Tests specific to SQLiteStatusStore."""

    @pytest.mark.asyncio
    async def test_records_survive_reopen(self, tmp_path: Path) -> None:
        """Test a second store on the same file sees earlier writes."""
        db_path = tmp_path / "beacon.sqlite3"
        await SQLiteStatusStore(db_path).upsert(make_record())

        assert await SQLiteStatusStore(db_path).get("db1") == make_record()

    @pytest.mark.asyncio
    async def test_rejects_mismatched_expected(self, tmp_path: Path) -> None:
        """Test expected must describe the same entity."""
        store = SQLiteStatusStore(tmp_path / "beacon.sqlite3")

        with pytest.raises(ValueError):
            await store.compare_and_set(make_record(name="db1"), make_record(name="web1"))

    def test_unopenable_database_raises_store_error(self, tmp_path: Path) -> None:
        """Test a database path that is a directory fails with StoreError."""
        db_path = tmp_path / "is_a_directory"
        db_path.mkdir()

        with pytest.raises(StoreError):
            SQLiteStatusStore(db_path)
