from __future__ import annotations


def test_in_memory_storage_get_set_remove():
    from tracker.features.storage.service import InMemoryStorage

    s = InMemoryStorage()
    assert s.get_item("vp_visitor_id") is None

    s.set_item("vp_visitor_id", "abc")
    assert s.get_item("vp_visitor_id") == "abc"

    s.remove_item("vp_visitor_id")
    assert s.get_item("vp_visitor_id") is None
    # removing an absent key is fine
    s.remove_item("vp_visitor_id")


def test_duckdb_storage_persists_across_reopen(tmp_path):
    from tracker.features.storage.duckdb_adapter import DuckDBStorage

    db_path = tmp_path / "profile.duckdb"

    s1 = DuckDBStorage(str(db_path))
    s1.open()
    s1.set_item("vp_visitor_id", "v-1")
    s1.set_item("vp_visitor_id", "v-2")  # upsert
    s1.close()

    s2 = DuckDBStorage(str(db_path))
    s2.open()
    assert s2.get_item("vp_visitor_id") == "v-2"
    s2.remove_item("vp_visitor_id")
    assert s2.get_item("vp_visitor_id") is None
    s2.close()


def test_duckdb_storage_clean_slate(tmp_path):
    from tracker.features.storage.duckdb_adapter import DuckDBStorage

    db_path = tmp_path / "profile.duckdb"

    s1 = DuckDBStorage(str(db_path))
    s1.open()
    s1.set_item("vp_last_activity", "123")
    s1.close()

    s2 = DuckDBStorage(str(db_path), clean_slate=True)
    s2.open()
    assert s2.get_item("vp_last_activity") is None
    s2.close()


def test_unopened_duckdb_storage_reads_as_absent(tmp_path):
    from tracker.features.storage.duckdb_adapter import DuckDBStorage

    s = DuckDBStorage(str(tmp_path / "never_opened.duckdb"))

    # unavailable storage never raises
    s.set_item("vp_visitor_id", "v-1")
    assert s.get_item("vp_visitor_id") is None


def test_unopened_write_logs_the_storage_key(tmp_path):
    import logging

    from tracker.features.storage.duckdb_adapter import DuckDBStorage

    records: list[logging.LogRecord] = []

    class _Capture(logging.Handler):
        def emit(self, record):
            records.append(record)

    s = DuckDBStorage(str(tmp_path / "never_opened.duckdb"))
    handler = _Capture()
    s._logger.addHandler(handler)
    try:
        s.set_item("vp_session_id", "s-1")
    finally:
        s._logger.removeHandler(handler)

    assert records[-1].storage_key == "vp_session_id"
    assert not hasattr(records[-1], "reason")
