from typing import Iterable, Mapping, Any
from app.models.rating import Mood, RatingStats


def tally_moods(rows: Iterable[Mapping[str, Any]]) -> RatingStats:
    """
    GROUP BY rating 결과({rating, count} 행)를 네 버킷 집계로 접습니다.

    데이터가 없는 버킷은 0으로 남고, 알 수 없는 rating 값의 행은 무시합니다.
    """
    counts = {mood.value: 0 for mood in Mood}
    for row in rows:
        rating = row["rating"]
        if rating in counts:
            counts[rating] += int(row["count"])
    return RatingStats(**counts)
