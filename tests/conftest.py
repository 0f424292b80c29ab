import os
import tempfile

# app.core.config는 import 시점에 환경변수를 읽으므로 app import 전에 설정한다.
# lifespan이 여는 기본 DB는 메모리 SQLite, 로그는 임시 디렉토리로 보낸다.
os.environ["APP_ENV"] = "development"
os.environ["SQLITE_PATH"] = ":memory:"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="ratings-logs-"))

import pytest
from fastapi import Request
from fastapi.testclient import TestClient
from app.api.dependencies import get_listener_fingerprint, get_rating_store
from app.main import app
from app.repositories.sqlite import SQLiteAdapter
from app.services.rating_store import RatingStore

LISTENER_HEADER = "X-Test-Listener"
DEFAULT_LISTENER = "listener-1"


@pytest.fixture
def sqlite_adapter(tmp_path):
    """테스트마다 독립적인 파일 SQLite 어댑터 (스키마 부트스트랩 완료 상태)"""
    adapter = SQLiteAdapter(str(tmp_path / "ratings.db"))
    adapter.connect()
    yield adapter
    adapter.close()


@pytest.fixture
def store(sqlite_adapter):
    return RatingStore(sqlite_adapter)


@pytest.fixture
def seeded_store(store):
    """track1에 (user1, love), (user2, happy)가 들어있는 저장소"""
    store.submit_rating("track1", "Artist 1", "Song 1", "Album 1", "love", "user1")
    store.submit_rating("track1", "Artist 1", "Song 1", "Album 1", "happy", "user2")
    return store


def fake_fingerprint(request: Request) -> str:
    """헤더로 청취자를 바꿔가며 테스트할 수 있게 fingerprint를 대체"""
    return request.headers.get(LISTENER_HEADER, DEFAULT_LISTENER)


@pytest.fixture
def client(store):
    """Dependency override가 적용된 TestClient 제공 및 자동 정리"""
    app.dependency_overrides[get_rating_store] = lambda: store
    app.dependency_overrides[get_listener_fingerprint] = fake_fingerprint
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def as_listener():
    """청취자 전환용 헤더 생성기"""
    def _headers(listener: str) -> dict:
        return {LISTENER_HEADER: listener}
    return _headers
