from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, Text, UniqueConstraint, func
from app.core.database import Base
from app.models.rating import Mood

_MOOD_LIST = ", ".join(f"'{value}'" for value in Mood.values())


class TrackRating(Base):
    """청취자 한 명이 트랙 하나에 남긴 반응을 저장하는 테이블 모델입니다.

    Args:
        id (int): 레코드 고유 ID (PK). 삭제된 id는 재사용하지 않음.
        track_id (str): 호출자가 정한 불투명 문자열 ("<artist> - <title>" 관례, 파싱하지 않음).
        artist (str): 표시용 아티스트명.
        title (str): 표시용 곡명.
        album (str): 표시용 앨범명. 모르면 NULL.
        rating (str): love | happy | sad | angry.
        user_session (str): 청취자 fingerprint.
        created_at (datetime): 마지막 평가 시각. 덮어쓸 때마다 갱신됨.

    Note:
        계정이 없으므로 users 테이블과의 FK 없이 user_session 문자열로 청취자를 구분한다.
    """
    __tablename__ = "track_ratings"
    __table_args__ = (
        # (track_id, user_session)마다 최대 한 행. upsert의 충돌 대상이기도 함
        UniqueConstraint("track_id", "user_session", name="uq_track_ratings_track_user"),
        CheckConstraint(f"rating IN ({_MOOD_LIST})", name="ck_track_ratings_rating"),
        Index("idx_track_ratings_track_id", "track_id"),
        Index("idx_track_ratings_user_session", "user_session"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    track_id = Column(Text, nullable=False)
    artist = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    album = Column(Text, nullable=True)
    rating = Column(Text, nullable=False)
    user_session = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.current_timestamp())
