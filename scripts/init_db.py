import argparse
import logging
import sys
from app.core.config import APP_ENV
from app.core.database import create_adapter, open_database
from app.exception.rating_exception import StorageError

logger = logging.getLogger(__name__)


def init_db(app_env: str = None) -> bool:
    """데이터베이스 스키마를 초기화합니다.

    Summary:
        서버 기동 시와 같은 부트스트랩을 CLI에서 실행합니다. 어댑터가
        SQLAlchemy 모델 메타데이터(Base.metadata.create_all)로 users, track_ratings와
        인덱스 2개를 만들고, 이미 있는 객체는 건너뛰므로 여러 번 실행해도 안전합니다.

    Returns:
        bool: 성공 여부
    """
    adapter = create_adapter(app_env)
    try:
        open_database(adapter)
    except StorageError as e:
        logger.error(e.message)
        return False
    else:
        logger.info(f"Schema ready ({type(adapter).__name__})")
        return True
    finally:
        adapter.close()


if __name__ == "__main__":
    # NOTE: 루트 디렉토리에서 'python -m scripts.init_db' 명령어로 실행해야 함
    parser = argparse.ArgumentParser(description="Bootstrap the ratings database schema")
    parser.add_argument("--env", default=APP_ENV, help="production | development (default: APP_ENV)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    sys.exit(0 if init_db(args.env) else 1)
