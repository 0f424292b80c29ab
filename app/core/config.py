import os
from dotenv import load_dotenv

load_dotenv()

APP_ENV = os.getenv("APP_ENV", "development")
IS_PRODUCTION = APP_ENV == "production"
IS_DEBUG = APP_ENV == "development"

# 개발: SQLite 단일 파일 / 운영: PostgreSQL
SQLITE_PATH = os.getenv("SQLITE_PATH", "./database.db")

DB_HOST = os.getenv("DB_HOST", "postgres")
DB_PORT = int(os.getenv("DB_PORT", "5432"))
DB_NAME = os.getenv("DB_NAME", "quantum_radio")
DB_USER = os.getenv("DB_USER", "quantum_user")
DB_PASSWORD = os.getenv("DB_PASSWORD", "quantum_password")

POSTGRES_CONFIG = {
    "host": DB_HOST,
    "port": DB_PORT,
    "dbname": DB_NAME,
    "user": DB_USER,
    "password": DB_PASSWORD,
}

LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


# CORS 허용 오리진 (환경변수 기반)
def _parse_origins(value: str | None) -> list[str]:
    if not value:
        return []
    normalized = value.replace("\n", ",").replace(";", ",")
    items = [item.strip() for item in normalized.split(",")]
    return [item for item in items if item]

_DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

# 중복 제거를 위해 dict 키 보존 방식 사용
ALLOWED_ORIGINS = list(dict.fromkeys(
    _DEFAULT_ALLOWED_ORIGINS + _parse_origins(os.getenv("CORS_ALLOWED_ORIGINS"))
))
