from typing import Optional
from sqlalchemy import create_engine
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import URL, CursorResult, Engine
from sqlalchemy.pool import StaticPool
from app.repositories.base import Statement
from app.repositories.engine import SQLAlchemyAdapter, build_statements, ratings, upsert_values


def _upsert_rating():
    # NOTE: ON CONFLICT ... DO UPDATE (SQLite 3.24+), RETURNING (3.35+)
    # 같은 (track_id, user_session)이면 기존 행을 제자리 갱신 -> id 유지
    stmt = sqlite_insert(ratings)
    return stmt.on_conflict_do_update(
        index_elements=[ratings.c.track_id, ratings.c.user_session],
        set_=upsert_values(stmt),
    ).returning(ratings.c.id)


SQLITE_STATEMENTS = build_statements(_upsert_rating())


class SQLiteAdapter(SQLAlchemyAdapter):
    """
    SQLite 단일 파일 어댑터 (개발 환경)

    Note:
        - FastAPI는 sync 엔드포인트를 스레드풀에서 실행하므로 check_same_thread=False로
          연결을 연다.
        - StaticPool: 프로세스당 연결 하나를 계속 사용한다 (":memory:"도 같은 DB를 유지).
    """

    statements = SQLITE_STATEMENTS

    def __init__(self, path: str = "./database.db"):
        super().__init__()
        self.path = path

    def _create_engine(self) -> Engine:
        return create_engine(
            URL.create("sqlite", database=self.path),
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    def _inserted_id(self, sql: Statement, result: CursorResult) -> Optional[int]:
        # RETURNING 없는 단순 INSERT는 드라이버의 lastrowid로 행 id를 알 수 있다
        if result.rowcount > 0 and isinstance(sql, str) and sql.lstrip().upper().startswith("INSERT"):
            return result.lastrowid
        return None
