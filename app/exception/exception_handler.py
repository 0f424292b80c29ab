from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from datetime import datetime
import logging
import traceback

from app.core.config import IS_DEBUG
from app.exception.base_exception import BaseCustomException, ErrorCode

logger = logging.getLogger("app")

INTERNAL_ERROR_MESSAGE = "Internal server error"


def error_body(message: str, **extra) -> dict:
    """평점 API의 실패 응답 본문: {"error": message}"""
    return {"error": message, **extra}


async def custom_exception_handler(request: Request, exc: BaseCustomException):
    """
    도메인 예외(BaseCustomException)를 {"error": ...} 응답으로 변환
    4xx는 경고, 5xx(StorageError 등)는 에러 수준으로 로깅합니다.
    """
    error_code_value = exc.error_code.value if hasattr(exc.error_code, 'value') else exc.error_code
    payload = {
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "status": exc.status_code,
        "errorCode": error_code_value,
        "message": exc.message,
        "path": request.url.path,
    }

    if exc.status_code >= 500:
        logger.error(payload)
    else:
        logger.warning(payload)

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    요청 본문 파싱/타입 검증 실패(FastAPI 기본 422)를 400 {"error": ...}로 변환
    """
    details = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        details.append(f"{field}: {error['msg']}" if field else error["msg"])

    message = "; ".join(details) or "Invalid request body"

    logger.warning({
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "status": status.HTTP_400_BAD_REQUEST,
        "errorCode": ErrorCode.COMMON_BAD_REQUEST.value,
        "message": message,
        "path": request.url.path,
    })

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message),
    )


async def global_exception_handler(request: Request, exc: Exception):
    """
    처리되지 않은 예외를 500으로 변환

    스택 트레이스는 항상 서버 로그에 남기고, 응답 본문에는
    개발 환경(IS_DEBUG=True)에서만 포함합니다.
    """
    error_msg = str(exc)

    logger.exception({
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "status": 500,
        "errorCode": ErrorCode.COMMON_INTERNAL_ERROR.value,
        "message": INTERNAL_ERROR_MESSAGE,
        "detail": error_msg,
        "path": request.url.path,
    })

    if IS_DEBUG:
        content = error_body(
            INTERNAL_ERROR_MESSAGE,
            error_detail=error_msg,
            stack_trace=traceback.format_exc(),
        )
    else:
        content = error_body(INTERNAL_ERROR_MESSAGE)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
    )
