from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from app.models.rating import Mood

# Request DTO
class SubmitRatingRequest(BaseModel):
    """
    POST /api/ratings 본문

    필드 존재/값 검증은 RatingStore가 담당하므로 여기서는 모두 Optional로 받는다.
    (누락 시 422가 아니라 필드명을 담은 400을 돌려주기 위함)
    """
    model_config = ConfigDict(json_schema_extra={
        "examples": [{
            "trackId": "Nujabes - Aruarian Dance",
            "artist": "Nujabes",
            "title": "Aruarian Dance",
            "album": "Samurai Champloo Music Record: Departure",
            "rating": "love",
        }]
    })

    trackId: Optional[str] = Field(None, description="Opaque track id (\"<artist> - <title>\" by convention)")
    artist: Optional[str] = Field(None, description="Artist display name")
    title: Optional[str] = Field(None, description="Track title")
    album: Optional[str] = Field(None, description="Album name, null when unknown")
    rating: Optional[str] = Field(None, description="One of love, happy, sad, angry")


# Response DTOs
class MoodCounts(BaseModel):
    love: int
    happy: int
    sad: int
    angry: int


class RatingStatsResponse(BaseModel):
    """GET /api/ratings/{trackId}"""
    stats: MoodCounts
    total: int


class UserRatingResponse(BaseModel):
    """GET /api/ratings/{trackId}/user"""
    rating: Optional[Mood] = None


class SubmitRatingResponse(BaseModel):
    """POST /api/ratings"""
    success: bool
    trackId: str
    rating: Mood
    userFingerprint: str
    message: str


class DeleteRatingResponse(BaseModel):
    """DELETE /api/ratings/{trackId}/user"""
    success: bool
    deleted: bool
    message: str
