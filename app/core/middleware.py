# =============================================================================
# 요청 공통 미들웨어
# =============================================================================
# - Trace ID: 요청별 추적 ID 발급/전파
# - Cache-Control: 폴링되는 /api 응답 캐시 방지
# - Real IP: 프록시 뒤 실제 클라이언트 IP 추출 (fingerprint 입력값)
# =============================================================================

import logging
import re
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from app.core.logging_config import set_trace_id

logger = logging.getLogger(__name__)

TRACE_ID_HEADER = "X-Trace-ID"

# UUID 형식 검증 정규식 (8-4-4-4-12)
UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE
)


class TraceIDMiddleware(BaseHTTPMiddleware):
    """
    요청마다 Trace ID를 부여합니다.

    클라이언트가 UUID 형식의 X-Trace-ID를 보내면 그대로 사용하고,
    없거나 형식이 잘못되었으면 새 UUIDv4를 발급합니다.
    응답 헤더에도 같은 값을 돌려줍니다.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        trace_id = request.headers.get(TRACE_ID_HEADER)

        if trace_id and not UUID_PATTERN.match(trace_id):
            logger.warning(f"Invalid Trace ID received: {trace_id!r}")
            trace_id = None

        if not trace_id:
            trace_id = str(uuid.uuid4())

        set_trace_id(trace_id)
        request.state.trace_id = trace_id

        response = await call_next(request)
        response.headers[TRACE_ID_HEADER] = trace_id
        return response


class CacheControlMiddleware(BaseHTTPMiddleware):
    """
    /api 응답에 캐시 방지 헤더를 붙입니다.
    청취자 화면은 통계를 주기적으로 다시 조회하므로 중간 캐시가 끼면 안 된다.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        if request.url.path.startswith("/api"):
            response.headers["Cache-Control"] = (
                "no-store, no-cache, must-revalidate, max-age=0"
            )
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"

        return response


class RealIPMiddleware(BaseHTTPMiddleware):
    """
    프록시 헤더에서 실제 클라이언트 IP를 추출해 request.state.real_ip에 저장합니다.

    IP 추출 우선순위:
    1. CF-Connecting-IP
    2. X-Forwarded-For의 첫 번째 IP
    3. X-Real-IP
    4. request.client.host (폴백)
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        real_ip = extract_real_ip(request)
        request.state.real_ip = real_ip

        # 헬스체크 제외
        if request.url.path != "/ping":
            logger.info(
                f"[{real_ip}] {request.method} {request.url.path}",
                extra={
                    "real_ip": real_ip,
                    "method": request.method,
                    "path": request.url.path,
                },
            )

        return await call_next(request)


def extract_real_ip(request: Request) -> str:
    cf_connecting_ip = request.headers.get("CF-Connecting-IP")
    if cf_connecting_ip:
        return cf_connecting_ip.strip()

    # 여러 프록시를 거친 경우 쉼표로 구분되며 첫 번째가 원래 클라이언트
    x_forwarded_for = request.headers.get("X-Forwarded-For")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()

    x_real_ip = request.headers.get("X-Real-IP")
    if x_real_ip:
        return x_real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


def get_real_ip(request: Request) -> str:
    """
    RealIPMiddleware가 저장한 IP를 반환합니다.
    미들웨어를 거치지 않은 요청이면 헤더에서 직접 추출합니다.
    """
    real_ip = getattr(request.state, "real_ip", None)
    return real_ip or extract_real_ip(request)
