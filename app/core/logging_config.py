import contextvars
import json
import logging
import os
from logging.handlers import TimedRotatingFileHandler
from typing import Optional

# 요청 단위 Trace ID (TraceIDMiddleware가 설정, 로깅 필터가 읽음)
trace_id_context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("trace_id", default=None)


def get_trace_id() -> Optional[str]:
    return trace_id_context.get()


def set_trace_id(trace_id: str) -> None:
    trace_id_context.set(trace_id)


class TraceIdFilter(logging.Filter):
    """모든 레코드에 현재 요청의 trace_id 속성을 주입합니다."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = get_trace_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        # 메시지가 dict면 그대로 기반으로 삼고, 아니면 기본 구조 생성
        base_message = record.msg if isinstance(record.msg, dict) else {
            "message": record.getMessage()
        }

        log = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "trace_id": getattr(record, "trace_id", None),
            **base_message,
        }

        if record.exc_info:
            log["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(log_dir: str = "logs", level: str = "INFO") -> None:
    """
    루트 로거에 JSON 콘솔 핸들러와 일자별 파일 핸들러를 연결합니다.

    lifespan이 여러 번 실행되어도(테스트 등) 핸들러가 중복 추가되지 않도록
    이전에 등록한 핸들러는 교체합니다.
    """
    os.makedirs(log_dir, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        if getattr(handler, "_ratings_handler", False):
            root_logger.removeHandler(handler)
            handler.close()

    json_formatter = JsonFormatter()
    trace_filter = TraceIdFilter()

    # 콘솔 핸들러
    console_handler = logging.StreamHandler()

    # 일자별 파일 로테이션 핸들러 (자정 기준, 7일 보관)
    file_handler = TimedRotatingFileHandler(
        filename=os.path.join(log_dir, "app.log"),
        when="midnight",
        backupCount=7,
        encoding="utf-8",
        utc=False,
    )

    for handler in (console_handler, file_handler):
        handler.setFormatter(json_formatter)
        handler.addFilter(trace_filter)
        handler._ratings_handler = True
        root_logger.addHandler(handler)
