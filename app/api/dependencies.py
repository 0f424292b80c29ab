from fastapi import Depends, Request
from app.core.fingerprint import get_listener_fingerprint
from app.repositories.base import DatabaseAdapter
from app.services.rating_store import RatingStore

__all__ = ["get_database", "get_rating_store", "get_listener_fingerprint"]


def get_database(request: Request) -> DatabaseAdapter:
    """lifespan에서 연결해 app.state.db에 올려둔 프로세스 단일 어댑터"""
    return request.app.state.db


def get_rating_store(db: DatabaseAdapter = Depends(get_database)) -> RatingStore:
    """
    RatingStore 의존성 주입

    RatingStore는 상태가 없는 얇은 래퍼이므로 요청마다 생성한다.
    테스트에서는 app.dependency_overrides로 교체한다.
    """
    return RatingStore(db)
