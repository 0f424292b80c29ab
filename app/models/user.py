from sqlalchemy import Column, DateTime, Integer, Text, func
from app.core.database import Base


class User(Base):
    """부트스트랩 시 함께 생성되는 users 테이블. 이 서비스에서 읽고 쓰는 연산은 없다."""
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    email = Column(Text, unique=True, nullable=False)
    created_at = Column(DateTime, server_default=func.current_timestamp())
