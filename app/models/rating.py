from dataclasses import dataclass
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class Mood(str, Enum):
    """청취자가 고를 수 있는 네 가지 반응 (닫힌 열거형)"""
    LOVE = "love"
    HAPPY = "happy"
    SAD = "sad"
    ANGRY = "angry"

    @classmethod
    def values(cls) -> list[str]:
        return [mood.value for mood in cls]


class RatingStats(BaseModel):
    """트랙별 집계. 네 버킷은 데이터가 없어도 항상 0으로 존재한다."""
    love: int = Field(0, ge=0)
    happy: int = Field(0, ge=0)
    sad: int = Field(0, ge=0)
    angry: int = Field(0, ge=0)

    @property
    def total(self) -> int:
        return self.love + self.happy + self.sad + self.angry


@dataclass(frozen=True)
class SubmitResult:
    """upsert 결과. id는 백엔드가 알려줄 수 있을 때만 채워진다."""
    rows_affected: int
    id: Optional[int] = None


@dataclass(frozen=True)
class DeleteResult:
    deleted: bool
