import threading
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ResourceClosedError
from app.repositories.base import ExecuteResult
from app.repositories.sqlite import SQLiteAdapter, SQLITE_STATEMENTS

UPSERT_PARAMS = {
    "track_id": "track1",
    "artist": "Artist",
    "title": "Title",
    "album": None,
    "rating": "love",
    "user_session": "user1",
}
PAIR = {"track_id": "track1", "user_session": "user1"}


def _schema_objects(adapter, kind):
    rows = adapter.query_all("SELECT name FROM sqlite_master WHERE type = ?", (kind,))
    return {row["name"] for row in rows}


class TestBootstrap:

    def test_creates_tables_and_indexes(self, sqlite_adapter):
        assert {"users", "track_ratings"} <= _schema_objects(sqlite_adapter, "table")
        assert {
            "idx_track_ratings_track_id",
            "idx_track_ratings_user_session",
        } <= _schema_objects(sqlite_adapter, "index")

    def test_bootstrap_is_idempotent(self, tmp_path):
        """같은 파일에 두 번 부트스트랩해도 오류 없이 기존 데이터가 유지되어야 한다."""
        path = str(tmp_path / "twice.db")
        first = SQLiteAdapter(path)
        first.connect()
        first.execute(SQLITE_STATEMENTS.upsert_rating, UPSERT_PARAMS)
        first.close()

        second = SQLiteAdapter(path)
        second.connect()
        try:
            rows = second.query_all("SELECT * FROM track_ratings")
            assert len(rows) == 1
        finally:
            second.close()

    def test_connect_twice_keeps_same_engine(self, sqlite_adapter):
        engine = sqlite_adapter.engine
        sqlite_adapter.connect()
        assert sqlite_adapter.engine is engine

    def test_concurrent_connect_creates_one_engine(self, tmp_path):
        adapter = SQLiteAdapter(str(tmp_path / "race.db"))
        engines = []

        def _connect():
            adapter.connect()
            engines.append(adapter.engine)

        threads = [threading.Thread(target=_connect) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        try:
            assert len({id(engine) for engine in engines}) == 1
        finally:
            adapter.close()

    def test_bootstrap_failure_propagates_engine_error(self, tmp_path):
        adapter = SQLiteAdapter(str(tmp_path / "missing-dir" / "ratings.db"))

        with pytest.raises(OperationalError):
            adapter.connect()

        assert adapter.closed

    def test_memory_database_survives_between_calls(self):
        """StaticPool: ":memory:"도 호출 사이에 같은 연결(같은 DB)을 유지한다."""
        adapter = SQLiteAdapter(":memory:")
        adapter.connect()
        try:
            adapter.execute(SQLITE_STATEMENTS.upsert_rating, UPSERT_PARAMS)
            assert adapter.query_one(SQLITE_STATEMENTS.user_rating, PAIR) == {"rating": "love"}
        finally:
            adapter.close()


class TestQueries:

    def test_query_one_absent_returns_none(self, sqlite_adapter):
        row = sqlite_adapter.query_one(
            SQLITE_STATEMENTS.user_rating, {"track_id": "nope", "user_session": "nobody"}
        )
        assert row is None

    def test_query_all_returns_dict_rows(self, sqlite_adapter):
        sqlite_adapter.execute(SQLITE_STATEMENTS.upsert_rating, UPSERT_PARAMS)

        rows = sqlite_adapter.query_all(SQLITE_STATEMENTS.rating_counts, {"track_id": "track1"})

        assert rows == [{"rating": "love", "count": 1}]

    def test_query_all_empty(self, sqlite_adapter):
        assert sqlite_adapter.query_all(SQLITE_STATEMENTS.rating_counts, {"track_id": "track1"}) == []

    def test_driver_sql_uses_qmark_positional_params(self, sqlite_adapter):
        sqlite_adapter.execute(SQLITE_STATEMENTS.upsert_rating, UPSERT_PARAMS)

        row = sqlite_adapter.query_one(
            "SELECT rating FROM track_ratings WHERE track_id = ? AND user_session = ?",
            ("track1", "user1"),
        )

        assert row == {"rating": "love"}


class TestExecute:

    def test_plain_insert_reports_inserted_id(self, sqlite_adapter):
        result = sqlite_adapter.execute(
            "INSERT INTO users (name, email) VALUES (?, ?)", ("Ann", "ann@example.com")
        )
        assert result.rows_affected == 1
        assert isinstance(result.inserted_id, int)

    def test_delete_has_no_inserted_id(self, sqlite_adapter):
        sqlite_adapter.execute(SQLITE_STATEMENTS.upsert_rating, UPSERT_PARAMS)

        result = sqlite_adapter.execute(SQLITE_STATEMENTS.delete_user_rating, PAIR)

        assert result == ExecuteResult(rows_affected=1, inserted_id=None)

    def test_delete_missing_row_affects_nothing(self, sqlite_adapter):
        result = sqlite_adapter.execute(SQLITE_STATEMENTS.delete_user_rating, PAIR)
        assert result.rows_affected == 0

    def test_upsert_keeps_id_and_single_row(self, sqlite_adapter):
        first = sqlite_adapter.execute(SQLITE_STATEMENTS.upsert_rating, UPSERT_PARAMS)
        second = sqlite_adapter.execute(
            SQLITE_STATEMENTS.upsert_rating,
            {**UPSERT_PARAMS, "artist": "Artist 2", "title": "Title 2", "album": "Album", "rating": "sad"},
        )

        assert first.rows_affected == 1
        assert second.rows_affected == 1
        assert first.inserted_id is not None
        assert second.inserted_id == first.inserted_id

        rows = sqlite_adapter.query_all("SELECT * FROM track_ratings")
        assert len(rows) == 1
        assert rows[0]["rating"] == "sad"
        assert rows[0]["artist"] == "Artist 2"
        assert rows[0]["album"] == "Album"
        assert rows[0]["created_at"] is not None

    def test_upsert_refreshes_created_at(self, sqlite_adapter):
        sqlite_adapter.execute(SQLITE_STATEMENTS.upsert_rating, UPSERT_PARAMS)
        sqlite_adapter.execute(
            "UPDATE track_ratings SET created_at = ? WHERE track_id = ?",
            ("2000-01-01 00:00:00", "track1"),
        )

        sqlite_adapter.execute(SQLITE_STATEMENTS.upsert_rating, {**UPSERT_PARAMS, "rating": "sad"})

        row = sqlite_adapter.query_one("SELECT created_at FROM track_ratings WHERE track_id = ?", ("track1",))
        assert row["created_at"] > "2000-01-01 00:00:00"

    def test_check_constraint_rejects_unknown_rating(self, sqlite_adapter):
        with pytest.raises(IntegrityError):
            sqlite_adapter.execute(SQLITE_STATEMENTS.upsert_rating, {**UPSERT_PARAMS, "rating": "angst"})

    def test_unique_constraint_on_plain_insert(self, sqlite_adapter):
        insert = (
            "INSERT INTO track_ratings (track_id, artist, title, rating, user_session) "
            "VALUES (?, ?, ?, ?, ?)"
        )
        sqlite_adapter.execute(insert, ("track1", "A", "T", "love", "user1"))
        with pytest.raises(IntegrityError):
            sqlite_adapter.execute(insert, ("track1", "A", "T", "sad", "user1"))

    def test_failed_write_leaves_no_partial_state(self, sqlite_adapter):
        with pytest.raises(IntegrityError):
            sqlite_adapter.execute(SQLITE_STATEMENTS.upsert_rating, {**UPSERT_PARAMS, "rating": "angst"})

        # 실패한 트랜잭션이 롤백되어 다음 호출이 정상 동작해야 한다
        assert sqlite_adapter.execute(SQLITE_STATEMENTS.upsert_rating, UPSERT_PARAMS).rows_affected == 1

    def test_closed_adapter_raises_engine_error(self, tmp_path):
        adapter = SQLiteAdapter(str(tmp_path / "closed.db"))
        adapter.connect()
        adapter.close()

        assert adapter.closed
        with pytest.raises(ResourceClosedError, match="closed"):
            adapter.query_all(SQLITE_STATEMENTS.rating_counts, {"track_id": "track1"})


def test_upsert_compiles_to_sqlite_on_conflict(sqlite_adapter):
    sql = str(SQLITE_STATEMENTS.upsert_rating.compile(dialect=sqlite_adapter.engine.dialect))

    assert "ON CONFLICT (track_id, user_session) DO UPDATE" in sql
    assert "RETURNING" in sql
    assert "?" in sql
    assert "%(" not in sql
