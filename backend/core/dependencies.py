import redis.asyncio as airedis
from core.config import settings
from core.logger import get_logger

logger = get_logger("connections")

# 전역 클라이언트 — lifespan에서 초기화/정리
_redis_client: airedis.Redis | None = None

# === FastAPI Depends()용 함수 ===

async def get_redis() -> airedis.Redis:
    if _redis_client is None:
        raise RuntimeError("Redis is not initialized. Check server startup.")
    return _redis_client


# === 수명주기 관리 (main.py의 lifespan에서 호출) ===

async def init_connections():
    global _redis_client

    _redis_client = airedis.from_url(
        settings.redis_url,
        decode_responses=True,  # bytes → str 자동 변환
    )

    # 연결 확인 — 실패 시 기동 중단
    await _redis_client.ping()
    logger.info("Redis connected")


async def close_connections():
    global _redis_client

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None

    logger.info("All connections closed")
