import logging
from typing import TYPE_CHECKING
from sqlalchemy.orm import declarative_base
from app.core import config
from app.exception.base_exception import ErrorCode
from app.exception.rating_exception import StorageError

if TYPE_CHECKING:
    from app.repositories.base import DatabaseAdapter

logger = logging.getLogger(__name__)

# NOTE: 모든 테이블 모델(app/models)이 이 Base에 등록되고, 어댑터의 connect()가
#       Base.metadata.create_all로 스키마를 부트스트랩한다.
Base = declarative_base()


def create_adapter(app_env: str = None) -> "DatabaseAdapter":
    """
    배포 환경에 맞는 DB 어댑터를 생성합니다. 프로세스 시작 시 한 번만 호출합니다.

    Args:
        app_env (str): 생략하면 config.APP_ENV 사용

    Returns:
        DatabaseAdapter: production이면 PostgresAdapter, 그 외에는 SQLiteAdapter

    Note:
        어댑터 모듈이 모델을 통해 이 모듈의 Base를 import 하므로 함수 안에서 import 한다.
    """
    app_env = app_env or config.APP_ENV

    if app_env == "production":
        from app.repositories.postgres import PostgresAdapter
        return PostgresAdapter(**config.POSTGRES_CONFIG)

    from app.repositories.sqlite import SQLiteAdapter
    return SQLiteAdapter(config.SQLITE_PATH)


def open_database(adapter: "DatabaseAdapter") -> "DatabaseAdapter":
    """
    연결 + 스키마 부트스트랩. 실패하면 StorageError로 감싸 올려 기동을 중단시킨다.
    """
    try:
        adapter.connect()
    except adapter.errors as e:
        logger.critical(f"Database bootstrap failed ({type(adapter).__name__}): {e}", exc_info=True)
        raise StorageError(
            message=f"Database bootstrap failed: {e}",
            error_code=ErrorCode.STORAGE_BOOTSTRAP_FAILED,
        ) from e
    return adapter
