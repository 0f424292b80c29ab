"""
청취자 식별(fingerprint)

계정 없이 청취자를 구분하기 위해 네트워크 출처와 클라이언트 헤더를 묶어
고정 길이 해시를 만듭니다. 평점 저장소는 이 값을 불투명한 문자열로만 다룹니다.
"""
import hashlib
from fastapi import Request
from app.core.middleware import get_real_ip

# 해시에 포함되는 클라이언트 신호 (순서 고정)
FINGERPRINT_HEADERS = (
    "User-Agent",
    "Accept",
    "Accept-Language",
    "Accept-Encoding",
)


def compute_fingerprint(ip: str, headers) -> str:
    """
    Args:
        ip (str): 실제 클라이언트 IP
        headers: 대소문자 무시 조회가 가능한 헤더 매핑 (Starlette Headers 등)

    Returns:
        str: SHA-256 hex digest
    """
    parts = [f"ip={ip}"]
    parts.extend(f"{name.lower()}={headers.get(name, '')}" for name in FINGERPRINT_HEADERS)
    return hashlib.sha256("\n".join(parts).encode("utf-8")).hexdigest()


def get_listener_fingerprint(request: Request) -> str:
    """FastAPI 의존성: 현재 요청의 청취자 fingerprint"""
    return compute_fingerprint(get_real_ip(request), request.headers)
