import logging
import json
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

from core.config import settings

# 요청별 고유 ID (같은 요청 안에서는 어디서든 동일한 값)
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class JsonFormatter(logging.Formatter):
    """
    로그를 한 줄짜리 JSON으로 출력하는 포매터

    {"timestamp": "...", "level": "INFO", "logger": "auth", "message": "...", "request_id": "abc-123"}

    주의: 비밀번호, 해시, 토큰 값은 절대 extra_data에 넣지 않는다.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get("-"),
        }

        # 추가 필드 병합 (user_id, client, duration_ms 등)
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        # logger.exception()으로 남긴 스택 트레이스는 서버 로그에만 남는다
        if record.exc_info:
            log_data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def get_logger(name: str) -> logging.Logger:
    """구조화된 JSON 로거 생성"""
    logger = logging.getLogger(name)

    # 중복 핸들러 방지
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(settings.log_level.upper())

    return logger


def generate_request_id() -> str:
    """요청별 고유 추적 ID 생성"""
    return uuid.uuid4().hex[:8]
