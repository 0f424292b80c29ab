"""
평점 API 폴링 클라이언트

스트림 메타데이터를 주기적으로 받아 현재 트랙이 바뀌면 집계와 내 평점을
다시 불러오는 청취자 측 흐름을 구현합니다. 현재 트랙/캐시 상태는 전역 변수가
아니라 ListenerSession 객체로 명시적으로 전달합니다.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote
import httpx
from app.models.rating import Mood, RatingStats

logger = logging.getLogger(__name__)


def track_id_from_metadata(metadata: Mapping[str, Any]) -> Optional[str]:
    """
    스트림 메타데이터에서 "<artist> - <title>" 형식의 track id를 만듭니다.
    artist 또는 title이 비어 있으면 None.
    """
    artist = metadata.get("artist")
    title = metadata.get("title")
    if not artist or not title:
        return None
    return f"{artist} - {title}"


@dataclass
class ListenerSession:
    """청취자 한 명의 화면 상태 (현재 트랙, 트랙별 집계/내 평점 캐시)"""
    current_track_id: Optional[str] = None
    stats: Dict[str, RatingStats] = field(default_factory=dict)
    user_ratings: Dict[str, Optional[Mood]] = field(default_factory=dict)

    @property
    def current_stats(self) -> RatingStats:
        if self.current_track_id is None:
            return RatingStats()
        return self.stats.get(self.current_track_id, RatingStats())

    @property
    def current_rating(self) -> Optional[Mood]:
        if self.current_track_id is None:
            return None
        return self.user_ratings.get(self.current_track_id)


class RatingsClient:
    """
    /api/ratings 엔드포인트용 얇은 httpx 래퍼

    Args:
        http (httpx.Client): base_url이 설정된 클라이언트 (테스트에서는 TestClient도 가능)

    Raises:
        httpx.HTTPStatusError: 4xx/5xx 응답
    """

    def __init__(self, http: httpx.Client):
        self.http = http

    @staticmethod
    def _path(track_id: str, suffix: str = "") -> str:
        return f"/api/ratings/{quote(track_id, safe='')}{suffix}"

    def get_stats(self, track_id: str) -> RatingStats:
        response = self.http.get(self._path(track_id))
        response.raise_for_status()
        return RatingStats(**response.json()["stats"])

    def get_user_rating(self, track_id: str) -> Optional[Mood]:
        response = self.http.get(self._path(track_id, "/user"))
        response.raise_for_status()
        rating = response.json()["rating"]
        return Mood(rating) if rating else None

    def submit_rating(
        self,
        track_id: str,
        artist: str,
        title: str,
        rating: Mood,
        album: Optional[str] = None,
    ) -> Dict[str, Any]:
        response = self.http.post(
            "/api/ratings",
            json={
                "trackId": track_id,
                "artist": artist,
                "title": title,
                "album": album,
                "rating": Mood(rating).value,
            },
        )
        response.raise_for_status()
        return response.json()

    def delete_user_rating(self, track_id: str) -> bool:
        response = self.http.delete(self._path(track_id, "/user"))
        response.raise_for_status()
        return response.json()["deleted"]


def refresh_track(session: ListenerSession, client: RatingsClient, track_id: str) -> None:
    session.stats[track_id] = client.get_stats(track_id)
    session.user_ratings[track_id] = client.get_user_rating(track_id)


def sync_track(session: ListenerSession, client: RatingsClient, metadata: Mapping[str, Any]) -> bool:
    """
    메타데이터 폴링 결과를 세션에 반영합니다.

    Returns:
        bool: 현재 트랙이 바뀌었으면 True (이때 집계와 내 평점을 다시 불러옴)
    """
    track_id = track_id_from_metadata(metadata)
    if track_id is None or track_id == session.current_track_id:
        return False

    session.current_track_id = track_id
    refresh_track(session, client, track_id)
    logger.debug(f"Now playing: {track_id}")
    return True


def rate_current_track(
    session: ListenerSession,
    client: RatingsClient,
    rating: Mood,
    artist: str,
    title: str,
    album: Optional[str] = None,
) -> RatingStats:
    """
    세션의 현재 트랙에 평점을 보내고 집계를 갱신합니다.

    Raises:
        ValueError: 재생 중인 트랙이 없을 때
    """
    track_id = session.current_track_id
    if track_id is None:
        raise ValueError("No track is currently playing")

    client.submit_rating(track_id, artist, title, rating, album=album)
    session.user_ratings[track_id] = Mood(rating)
    session.stats[track_id] = client.get_stats(track_id)
    return session.stats[track_id]
