"""Tests for path record store module."""

import pytest
import threading

from src.dirmonitor.exceptions import StoreClosedError
from src.dirmonitor.models import PathRecord, Status
from src.dirmonitor.store import PathRecordStore


class TestPathRecordStore:
    """Tests for PathRecordStore class."""

    def test_create_store(self, tmp_path):
        db_path = tmp_path / "test.db"
        store = PathRecordStore(db_path)
        assert db_path.exists()
        assert store.count() == 0
        store.close()

    def test_save_and_find(self, tmp_path):
        with PathRecordStore(tmp_path / "test.db") as store:
            store.save(PathRecord("/data/a.txt", "ext-1", 10.5, Status.PROCESSED))

            record = store.find_by_path("/data/a.txt")

            assert record == PathRecord("/data/a.txt", "ext-1", 10.5, Status.PROCESSED)

    def test_find_missing_returns_none(self, tmp_path):
        with PathRecordStore(tmp_path / "test.db") as store:
            assert store.find_by_path("/data/missing.txt") is None

    def test_find_accepts_path_objects(self, tmp_path):
        with PathRecordStore(tmp_path / "test.db") as store:
            path = tmp_path / "a.txt"
            store.save(PathRecord(path))
            assert store.find_by_path(path) is not None

    def test_save_upserts_by_path(self, tmp_path):
        with PathRecordStore(tmp_path / "test.db") as store:
            store.save(PathRecord("/data/a.txt", None, 1.0, Status.UNPROCESSED))
            store.save(PathRecord("/data/a.txt", "ext-2", 2.0, Status.PROCESSED))

            assert store.count() == 1
            record = store.find_by_path("/data/a.txt")
            assert record.external_id == "ext-2"
            assert record.modified == 2.0
            assert record.status == Status.PROCESSED

    def test_delete_by_path(self, tmp_path):
        with PathRecordStore(tmp_path / "test.db") as store:
            store.save(PathRecord("/data/a.txt"))

            assert store.delete_by_path("/data/a.txt") is True
            assert store.find_by_path("/data/a.txt") is None
            assert store.delete_by_path("/data/a.txt") is False

    def test_find_by_status(self, tmp_path):
        with PathRecordStore(tmp_path / "test.db") as store:
            store.save(PathRecord("/data/b.txt", status=Status.UNPROCESSED))
            store.save(PathRecord("/data/a.txt", status=Status.UNPROCESSED))
            store.save(PathRecord("/data/c.txt", status=Status.PROCESSED))

            pending = store.find_by_status(Status.UNPROCESSED)

            assert [r.path for r in pending] == ["/data/a.txt", "/data/b.txt"]
            assert store.find_by_status(Status.UNPROCESSED_DELETE) == []

    def test_find_all(self, tmp_path):
        with PathRecordStore(tmp_path / "test.db") as store:
            store.save(PathRecord("/data/a.txt"))
            store.save(PathRecord("/data/b.txt", status=Status.PROCESSED))

            paths = [record.path for record in store.find_all()]

            assert paths == ["/data/a.txt", "/data/b.txt"]

    def test_find_all_allows_modification_while_iterating(self, tmp_path):
        with PathRecordStore(tmp_path / "test.db") as store:
            for name in ("a", "b", "c"):
                store.save(PathRecord(f"/data/{name}.txt"))

            for record in store.find_all():
                store.delete_by_path(record.path)

            assert store.count() == 0

    def test_count_by_status(self, tmp_path):
        with PathRecordStore(tmp_path / "test.db") as store:
            store.save(PathRecord("/data/a.txt", status=Status.PROCESSED))
            store.save(PathRecord("/data/b.txt", status=Status.PROCESSED))
            store.save(PathRecord("/data/c.txt", status=Status.UNPROCESSED_UPDATE))

            counts = store.count_by_status()

            assert counts[Status.PROCESSED] == 2
            assert counts[Status.UNPROCESSED_UPDATE] == 1
            assert counts[Status.UNPROCESSED] == 0
            assert counts[Status.UNPROCESSED_DELETE] == 0
            assert len(store) == 3

    def test_persistence_across_reopen(self, tmp_path):
        db_path = tmp_path / "test.db"
        with PathRecordStore(db_path) as store:
            store.save(PathRecord("/data/a.txt", "ext", 5.0, Status.UNPROCESSED_DELETE))

        with PathRecordStore(db_path) as store:
            record = store.find_by_path("/data/a.txt")
            assert record.status == Status.UNPROCESSED_DELETE
            assert record.external_id == "ext"

    def test_in_memory_store(self):
        with PathRecordStore(":memory:") as store:
            store.save(PathRecord("/data/a.txt"))
            assert store.count() == 1

    def test_closed_store_raises(self, tmp_path):
        store = PathRecordStore(tmp_path / "test.db")
        store.close()

        with pytest.raises(StoreClosedError):
            store.find_by_path("/data/a.txt")
        with pytest.raises(StoreClosedError):
            store.save(PathRecord("/data/a.txt"))

    def test_close_idempotent(self, tmp_path):
        store = PathRecordStore(tmp_path / "test.db")
        store.close()
        store.close()

    def test_concurrent_saves(self, tmp_path):
        with PathRecordStore(tmp_path / "test.db") as store:
            def worker(n):
                for i in range(20):
                    store.save(PathRecord(f"/data/{n}-{i}.txt"))

            threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            assert store.count() == 80
