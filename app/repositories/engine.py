import logging
import threading
from typing import List, Optional
from sqlalchemy import and_, bindparam, delete, func, select
from sqlalchemy.engine import Connection, CursorResult, Engine
from sqlalchemy.exc import ResourceClosedError, SQLAlchemyError
from sqlalchemy.sql.expression import Executable
from app.core.database import Base
from app.models.track_rating import TrackRating
from app.models.user import User  # noqa: F401  (create_all 대상으로 등록)
from app.repositories.base import ExecuteResult, Params, RatingStatements, Row, Statement

logger = logging.getLogger(__name__)

ratings = TrackRating.__table__


def build_statements(upsert_rating: Executable) -> RatingStatements:
    """
    백엔드별 upsert와 방언 공통의 조회/삭제 문장을 하나의 RatingStatements로 묶는다.
    """
    same_pair = and_(
        ratings.c.track_id == bindparam("track_id"),
        ratings.c.user_session == bindparam("user_session"),
    )
    return RatingStatements(
        upsert_rating=upsert_rating,
        rating_counts=(
            select(ratings.c.rating, func.count().label("count"))
            .where(ratings.c.track_id == bindparam("track_id"))
            .group_by(ratings.c.rating)
        ),
        user_rating=select(ratings.c.rating).where(same_pair),
        delete_user_rating=delete(ratings).where(same_pair),
    )


def upsert_values(insert_stmt):
    """ON CONFLICT DO UPDATE에서 덮어쓸 컬럼. created_at은 '마지막 평가 시각'으로 갱신."""
    return {
        "artist": insert_stmt.excluded.artist,
        "title": insert_stmt.excluded.title,
        "album": insert_stmt.excluded.album,
        "rating": insert_stmt.excluded.rating,
        "created_at": func.current_timestamp(),
    }


class SQLAlchemyAdapter:
    """
    SQLAlchemy Engine 위의 어댑터 공통부

    Note:
        - 하위 클래스의 _create_engine()이 연결 하나짜리 엔진을 만든다.
        - 호출마다 engine.begin()으로 문장 하나짜리 트랜잭션을 열고 끝나면 커밋한다.
        - 공유 연결 사용(연결/해제 포함)은 내부 락으로 직렬화한다.
        - 문자열 SQL은 드라이버 문법 그대로(exec_driver_sql) 위치 파라미터로 실행한다.
    """

    errors = (SQLAlchemyError,)
    statements: RatingStatements
    metadata = Base.metadata

    def __init__(self):
        self._engine: Optional[Engine] = None
        self._lock = threading.Lock()

    def _create_engine(self) -> Engine:
        raise NotImplementedError

    def connect(self) -> None:
        with self._lock:
            if self._engine is not None:
                return

            engine = self._create_engine()
            try:
                # NOTE: create_all은 기본이 checkfirst=True라 여러 번 실행해도 안전함
                self.metadata.create_all(bind=engine)
            except SQLAlchemyError:
                engine.dispose()
                raise

            self._engine = engine

        logger.info(
            f"Connected to {engine.dialect.name} database at "
            f"{engine.url.render_as_string(hide_password=True)}"
        )

    def close(self) -> None:
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None
                logger.info(f"{type(self).__name__} engine disposed")

    @property
    def closed(self) -> bool:
        return self._engine is None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise ResourceClosedError("Cannot operate on a closed database.")
        return self._engine

    def query_all(self, sql: Statement, params: Params = ()) -> List[Row]:
        with self._lock, self.engine.begin() as conn:
            result = self._execute(conn, sql, params)
            return [dict(row) for row in result.mappings()]

    def query_one(self, sql: Statement, params: Params = ()) -> Optional[Row]:
        with self._lock, self.engine.begin() as conn:
            row = self._execute(conn, sql, params).mappings().first()
        return dict(row) if row is not None else None

    def execute(self, sql: Statement, params: Params = ()) -> ExecuteResult:
        with self._lock, self.engine.begin() as conn:
            result = self._execute(conn, sql, params)

            if result.returns_rows:
                # RETURNING 절: 반환된 행마다 변경된 행이 하나씩 있다
                rows = result.mappings().all()
                inserted_id = rows[0].get("id") if rows else None
                return ExecuteResult(rows_affected=len(rows), inserted_id=inserted_id)

            return ExecuteResult(
                rows_affected=result.rowcount,
                inserted_id=self._inserted_id(sql, result),
            )

    def _inserted_id(self, sql: Statement, result: CursorResult) -> Optional[int]:
        """RETURNING 없는 쓰기의 행 id. 기본은 알 수 없음."""
        return None

    @staticmethod
    def _execute(conn: Connection, sql: Statement, params: Params) -> CursorResult:
        if isinstance(sql, str):
            if params:
                return conn.exec_driver_sql(sql, tuple(params))
            return conn.exec_driver_sql(sql)
        return conn.execute(sql, dict(params))
