"""
미들웨어 통합 테스트

httpx.AsyncClient + ASGITransport로 실제 앱에 요청을 보내 미들웨어 체인 전체를 검증합니다.
ASGITransport는 lifespan을 실행하지 않으므로 DB가 필요한 경로는 저장소 의존성을 덮어쓴다.
"""

import uuid
import pytest
import pytest_asyncio
from unittest.mock import MagicMock
from httpx import AsyncClient, ASGITransport
from app.api.dependencies import get_rating_store
from app.core.middleware import extract_real_ip, get_real_ip
from app.main import app


@pytest_asyncio.fixture
async def client(store):
    app.dependency_overrides[get_rating_store] = lambda: store
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


class TestTraceIDMiddleware:

    @pytest.mark.asyncio
    async def test_trace_id_auto_generated(self, client):
        response = await client.get("/ping")

        trace_id = response.headers.get("X-Trace-ID")
        assert trace_id is not None
        assert str(uuid.UUID(trace_id, version=4)) == trace_id

    @pytest.mark.asyncio
    async def test_trace_id_passthrough(self, client):
        sent = str(uuid.uuid4())
        response = await client.get("/ping", headers={"X-Trace-ID": sent})
        assert response.headers["X-Trace-ID"] == sent

    @pytest.mark.asyncio
    async def test_invalid_trace_id_is_replaced(self, client):
        response = await client.get("/ping", headers={"X-Trace-ID": "<script>alert(1)</script>"})

        trace_id = response.headers["X-Trace-ID"]
        assert trace_id != "<script>alert(1)</script>"
        uuid.UUID(trace_id)

    @pytest.mark.asyncio
    async def test_each_request_gets_its_own_trace_id(self, client):
        first = await client.get("/ping")
        second = await client.get("/ping")
        assert first.headers["X-Trace-ID"] != second.headers["X-Trace-ID"]


class TestCacheControlMiddleware:

    @pytest.mark.asyncio
    async def test_api_paths_are_not_cached(self, client):
        response = await client.get("/api/ratings/some-track")

        assert response.status_code == 200
        assert response.headers["Cache-Control"] == "no-store, no-cache, must-revalidate, max-age=0"
        assert response.headers["Expires"] == "0"

    @pytest.mark.asyncio
    async def test_non_api_paths_untouched(self, client):
        response = await client.get("/ping")
        assert "Cache-Control" not in response.headers


class TestRealIP:

    def _request(self, headers, host="10.0.0.1"):
        request = MagicMock()
        request.headers = headers
        request.client.host = host
        return request

    def test_cloudflare_header_wins(self):
        request = self._request({"CF-Connecting-IP": " 1.1.1.1 ", "X-Forwarded-For": "2.2.2.2"})
        assert extract_real_ip(request) == "1.1.1.1"

    def test_first_forwarded_for_address(self):
        request = self._request({"X-Forwarded-For": "3.3.3.3, 10.0.0.2, 10.0.0.3"})
        assert extract_real_ip(request) == "3.3.3.3"

    def test_x_real_ip(self):
        assert extract_real_ip(self._request({"X-Real-IP": "4.4.4.4"})) == "4.4.4.4"

    def test_socket_peer_fallback(self):
        assert extract_real_ip(self._request({})) == "10.0.0.1"

    def test_unknown_without_client(self):
        request = self._request({})
        request.client = None
        assert extract_real_ip(request) == "unknown"

    def test_get_real_ip_prefers_middleware_state(self):
        request = self._request({"X-Real-IP": "4.4.4.4"})
        request.state.real_ip = "5.5.5.5"
        assert get_real_ip(request) == "5.5.5.5"
