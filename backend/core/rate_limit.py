import time
from fastapi import Depends, Request
from redis.asyncio import Redis

from core.config import settings
from core.dependencies import get_redis
from core.errors import AppError, ErrorKind
from core.logger import get_logger

logger = get_logger("rate_limit")


def client_address(request: Request) -> str:
    """rate limit 키로 쓸 클라이언트 주소 (TRUST_PROXY일 때만 X-Forwarded-For 사용)"""
    if settings.trust_proxy:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else "unknown"


class RateLimiter:
    """
    고정 윈도우 카운터 (Redis INCR + EXPIRE)

    키 구조: ratelimit:{name}:{client}:{window_index}
      - window_index = 현재 시각 // window_seconds
      - INCR은 원자적 연산이라 동시 요청에도 카운트가 꼬이지 않는다
      - 첫 요청에서 TTL을 걸어 윈도우가 끝나면 자동 삭제
    """

    def __init__(self, name: str, max_attempts: int, window_seconds: int, message: str):
        self.name = name
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.message = message

    def _make_key(self, client: str, now: float) -> str:
        window_index = int(now // self.window_seconds)
        return f"ratelimit:{self.name}:{client}:{window_index}"

    async def hit(self, redis: Redis, client: str, now: float | None = None) -> int:
        """
        시도 1회 기록
        Returns:
            현재 윈도우의 시도 횟수 (증가 후)
        Raises:
            AppError(RATE_LIMITED): 한도 초과 시 (Retry-After 헤더 포함)
        """
        now = time.time() if now is None else now
        key = self._make_key(client, now)

        current = await redis.incr(key)
        if current == 1:
            await redis.expire(key, self.window_seconds)

        if current > self.max_attempts:
            retry_after = self.window_seconds - int(now % self.window_seconds)
            logger.warning(
                "Rate limit exceeded",
                extra={"extra_data": {"limiter": self.name, "client": client, "attempts": current}},
            )
            raise AppError(
                ErrorKind.RATE_LIMITED,
                self.message,
                headers={"Retry-After": str(retry_after)},
            )
        return current

    def dependency(self):
        """라우트의 dependencies=[...]에 넣는 FastAPI 의존성 — 핸들러와 DB 세션보다 먼저 실행된다"""

        async def _dependency(request: Request, redis: Redis = Depends(get_redis)) -> None:
            await self.hit(redis, client_address(request))

        return _dependency


login_limiter = RateLimiter(
    name="login",
    max_attempts=settings.login_rate_limit,
    window_seconds=settings.login_rate_window_seconds,
    message="Too many login attempts, please try again later",
)

register_limiter = RateLimiter(
    name="register",
    max_attempts=settings.register_rate_limit,
    window_seconds=settings.register_rate_window_seconds,
    message="Too many registration attempts, please try again later",
)
