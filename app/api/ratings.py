from urllib.parse import unquote_to_bytes
from fastapi import APIRouter, Depends, status
from fastapi.routing import APIRoute
from starlette.routing import Match
from starlette.types import Scope
from app.api.dependencies import get_listener_fingerprint, get_rating_store
from app.models.dto import (
    DeleteRatingResponse,
    MoodCounts,
    RatingStatsResponse,
    SubmitRatingRequest,
    SubmitRatingResponse,
    UserRatingResponse,
)
from app.services.rating_store import RatingStore


class RawPathRoute(APIRoute):
    """
    퍼센트 인코딩이 남아 있는 원본 경로(raw_path)로 매칭하는 라우트

    "Remix%2Fuser"는 track id "Remix/user"의 통계 요청이지 "/user" 라우트가 아니다.
    매칭된 track_id는 인코딩된 상태이므로 핸들러에서 decode_track_id로 푼다.
    """

    def matches(self, scope: Scope) -> tuple[Match, Scope]:
        raw_path = scope.get("raw_path")
        if scope["type"] == "http" and raw_path:
            # 일부 서버/전송 계층은 raw_path에 쿼리 문자열을 붙여 보낸다
            path = raw_path.split(b"?", 1)[0].decode("latin-1")
            scope = {**scope, "path": path}
        return super().matches(scope)


def decode_track_id(encoded: str) -> str:
    """raw_path에서 잘라낸 track id를 UTF-8 문자열로 복원"""
    return unquote_to_bytes(encoded.encode("latin-1")).decode("utf-8", errors="replace")


router = APIRouter(
    prefix="/api/ratings",
    tags=["Ratings"],
    route_class=RawPathRoute,
)

# NOTE: track_id는 "AC/DC - Thunderstruck"처럼 '/'를 포함할 수 있어 path 변환기를 쓴다.
#       인코딩되지 않은 "/user"로 끝나는 경로만 평점 조회/삭제 라우트로 간다.


@router.get("/{track_id:path}/user", response_model=UserRatingResponse, status_code=status.HTTP_200_OK)
def get_user_rating(
    track_id: str,
    fingerprint: str = Depends(get_listener_fingerprint),
    store: RatingStore = Depends(get_rating_store),
) -> UserRatingResponse:
    """
    현재 청취자의 평점 조회

    Returns:
        200 OK: {"rating": "love" | ... | null}
    """
    track_id = decode_track_id(track_id)
    return UserRatingResponse(rating=store.get_user_rating(track_id, fingerprint))


@router.delete("/{track_id:path}/user", response_model=DeleteRatingResponse, status_code=status.HTTP_200_OK)
def delete_user_rating(
    track_id: str,
    fingerprint: str = Depends(get_listener_fingerprint),
    store: RatingStore = Depends(get_rating_store),
) -> DeleteRatingResponse:
    """
    현재 청취자의 평점 삭제 (멱등)

    Returns:
        200 OK: 삭제했으면 deleted=true, 지울 평점이 없었으면 deleted=false
    """
    track_id = decode_track_id(track_id)
    result = store.delete_user_rating(track_id, fingerprint)
    return DeleteRatingResponse(
        success=True,
        deleted=result.deleted,
        message="Rating deleted" if result.deleted else "No rating found to delete",
    )


@router.get("/{track_id:path}", response_model=RatingStatsResponse, status_code=status.HTTP_200_OK)
def get_rating_stats(
    track_id: str,
    store: RatingStore = Depends(get_rating_store),
) -> RatingStatsResponse:
    """
    트랙별 반응 집계

    Returns:
        200 OK: {"stats": {"love", "happy", "sad", "angry"}, "total"}
    """
    track_id = decode_track_id(track_id)
    stats = store.get_stats(track_id)
    return RatingStatsResponse(
        stats=MoodCounts(**stats.model_dump()),
        total=stats.total,
    )


@router.post("", response_model=SubmitRatingResponse, status_code=status.HTTP_200_OK)
def submit_rating(
    body: SubmitRatingRequest,
    fingerprint: str = Depends(get_listener_fingerprint),
    store: RatingStore = Depends(get_rating_store),
) -> SubmitRatingResponse:
    """
    평점 등록/변경

    같은 청취자가 같은 트랙에 다시 보내면 기존 평점을 덮어쓴다.

    Returns:
        200 OK: 저장 성공
        400 Bad Request: 필수 필드 누락 또는 허용되지 않은 rating
    """
    store.submit_rating(
        track_id=body.trackId,
        artist=body.artist,
        title=body.title,
        album=body.album,
        rating=body.rating,
        user_session=fingerprint,
    )

    return SubmitRatingResponse(
        success=True,
        trackId=body.trackId,
        rating=body.rating,
        userFingerprint=fingerprint,
        message="Rating saved successfully",
    )
