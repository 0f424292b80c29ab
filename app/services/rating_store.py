import logging
from typing import Optional
from app.exception.rating_exception import (
    RatingValidationError,
    StorageError,
    INVALID_RATING_MESSAGE,
    MISSING_SESSION_MESSAGE,
    REQUIRED_FIELDS_MESSAGE,
)
from app.models.rating import DeleteResult, Mood, RatingStats, SubmitResult
from app.repositories.base import DatabaseAdapter
from app.services.rating_stats import tally_moods

logger = logging.getLogger(__name__)


class RatingStore:
    """
    트랙 평점 저장소 (track_ratings)

    (track_id, user_session) 쌍마다 최대 한 행을 유지합니다. 이 불변식은 DB의
    UNIQUE 제약과 upsert 충돌 처리에 맡기며, 애플리케이션 락이나
    조회 후 쓰기(read-then-write)는 사용하지 않습니다.

    모든 연산은 어댑터 문장 하나만 실행합니다. SQL 문장(SQLAlchemy Core)은 어댑터가 소유한
    RatingStatements에서 가져오므로 방언이 섞일 수 없습니다.

    Args:
        db (DatabaseAdapter): 연결이 열린 어댑터
    """

    def __init__(self, db: DatabaseAdapter):
        self.db = db
        self.sql = db.statements

    def submit_rating(
        self,
        track_id: str,
        artist: str,
        title: str,
        album: Optional[str],
        rating: str,
        user_session: str,
    ) -> SubmitResult:
        """
        평점 등록 또는 변경 (upsert)

        Args:
            album (Optional[str]): None이면 NULL로 저장, 문자열(빈 문자열 포함)은 그대로 저장

        Returns:
            SubmitResult: 영향받은 행 수와 행 id (백엔드가 알려줄 때)

        Raises:
            RatingValidationError: 필수값 누락 또는 허용되지 않은 rating. 쓰기는 시도하지 않음
            StorageError: DB 실행 실패
        """
        mood = self._validate_submission(track_id, artist, title, rating, user_session)

        result = self._run(
            "submit_rating",
            self.db.execute,
            self.sql.upsert_rating,
            {
                "track_id": track_id,
                "artist": artist,
                "title": title,
                "album": album,
                "rating": mood.value,
                "user_session": user_session,
            },
        )

        logger.info(
            f"Rating saved: track={track_id!r} rating={mood.value}",
            extra={"track_id": track_id, "rating": mood.value},
        )
        return SubmitResult(rows_affected=result.rows_affected, id=result.inserted_id)

    def get_stats(self, track_id: str) -> RatingStats:
        """트랙별 네 버킷 집계. 평점이 없는 트랙은 전부 0."""
        rows = self._run("get_stats", self.db.query_all, self.sql.rating_counts, {"track_id": track_id})
        return tally_moods(rows)

    def get_user_rating(self, track_id: str, user_session: str) -> Optional[Mood]:
        """청취자의 현재 평점. 없으면 None (오류 아님)."""
        row = self._run(
            "get_user_rating",
            self.db.query_one,
            self.sql.user_rating,
            {"track_id": track_id, "user_session": user_session},
        )
        if row is None:
            return None
        return Mood(row["rating"])

    def delete_user_rating(self, track_id: str, user_session: str) -> DeleteResult:
        """청취자의 평점 삭제. 없던 행을 지우면 deleted=False (오류 아님)."""
        result = self._run(
            "delete_user_rating",
            self.db.execute,
            self.sql.delete_user_rating,
            {"track_id": track_id, "user_session": user_session},
        )
        return DeleteResult(deleted=result.rows_affected > 0)

    @staticmethod
    def _validate_submission(track_id, artist, title, rating, user_session) -> Mood:
        if not track_id or not artist or not title or not rating:
            raise RatingValidationError(REQUIRED_FIELDS_MESSAGE)

        try:
            mood = Mood(rating)
        except ValueError:
            raise RatingValidationError(INVALID_RATING_MESSAGE)

        if not user_session:
            raise RatingValidationError(MISSING_SESSION_MESSAGE)

        return mood

    def _run(self, operation: str, fn, statement, params: dict):
        # 엔진 오류는 재시도 없이 StorageError로 한 번만 변환해 올린다
        try:
            return fn(statement, params)
        except self.db.errors as e:
            logger.error(f"{operation} failed: {e}", exc_info=True)
            raise StorageError(str(e)) from e
