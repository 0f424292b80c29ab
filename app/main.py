import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from app.api.ratings import router as ratings_router
from app.core.config import ALLOWED_ORIGINS, APP_ENV, LOG_DIR, LOG_LEVEL
from app.core.database import create_adapter, open_database
from app.core.logging_config import setup_logging
from app.core.middleware import CacheControlMiddleware, RealIPMiddleware, TraceIDMiddleware
from app.exception.base_exception import BaseCustomException
from app.exception.exception_handler import (
    custom_exception_handler,
    global_exception_handler,
    validation_exception_handler,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    프로세스 단위 DB 어댑터 수명 관리

    기동 시 배포 환경(APP_ENV)에 맞는 어댑터를 한 번 고르고 스키마를 부트스트랩한다.
    부트스트랩 실패는 예외로 전파되어 기동이 중단된다.
    """
    # 로깅 설정(콘솔 + 일자별 파일 로테이션, JSON 포맷)
    setup_logging(LOG_DIR, LOG_LEVEL)

    db = open_database(create_adapter())
    app.state.db = db
    logger.info(f"Ratings API started (APP_ENV={APP_ENV}, backend={type(db).__name__})")

    try:
        yield
    finally:
        db.close()
        logger.info("Ratings API stopped")


app = FastAPI(title="Track Mood Ratings API", lifespan=lifespan)

# 미들웨어는 나중에 추가한 것이 바깥쪽: TraceID -> RealIP -> CacheControl 순으로 실행
app.add_middleware(CacheControlMiddleware)
app.add_middleware(RealIPMiddleware)
app.add_middleware(TraceIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/ping")
def ping():
    return {"ok": True}


# API 라우터 포함
app.include_router(ratings_router)

# 커스텀 예외 핸들러는 라우터 포함 이후에 추가
app.add_exception_handler(BaseCustomException, custom_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)
