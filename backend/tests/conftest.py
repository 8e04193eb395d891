"""
pytest 공통 설정

- DB: 테스트마다 임시 SQLite 파일 + NullPool (매 요청마다 새 커넥션)
- Redis: rate limit 카운터용 인메모리 대역(FakeRedis)
- 앱: main.app을 그대로 쓰되 lifespan은 실행하지 않고 get_db / get_redis만 교체
"""
import sys
import os
import uuid
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# core.config import 전에 설정 — 실제 DB/Redis 없이 Settings가 만들어지도록
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./unused-test.db")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool
from starlette.testclient import TestClient

from core.database import Base, get_db
from core.dependencies import get_redis
from core.metrics import metrics_store
from main import app
import models.users  # noqa: F401  metadata에 users 테이블 등록


class FakeRedis:
    """rate limiter가 쓰는 명령(INCR, EXPIRE)만 흉내내는 테스트 대역"""

    def __init__(self):
        self.values: dict[str, int] = {}
        self.ttls: dict[str, int] = {}

    async def incr(self, key: str) -> int:
        self.values[key] = self.values.get(key, 0) + 1
        return self.values[key]

    async def expire(self, key: str, seconds: int) -> bool:
        self.ttls[key] = seconds
        return True


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def session_factory(tmp_path):
    """테스트 전용 DB — 스키마는 동기 엔진으로 만들고, 앱은 async 엔진으로 접근"""
    db_path = tmp_path / "auth.db"

    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    test_engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    yield async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def db_calls():
    """get_db가 몇 번 호출됐는지 기록 (rate limit 시 DB를 건드리지 않는지 확인용)"""
    return []


@pytest.fixture
def client(session_factory, fake_redis, db_calls):
    """동기식 테스트 클라이언트"""

    async def override_get_db():
        db_calls.append(1)
        async with session_factory() as session:
            try:
                yield session
            finally:
                await session.close()

    async def override_get_redis():
        return fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    metrics_store.reset()

    # with 블록 없이 생성 → lifespan(실제 DB/Redis 연결)은 실행되지 않음
    c = TestClient(app)
    yield c
    c.close()
    app.dependency_overrides.clear()


def make_user_payload(prefix: str = "user") -> dict:
    unique = uuid.uuid4().hex[:6]
    return {
        "username": f"{prefix}_{unique}",
        "email": f"{prefix}_{unique}@example.com",
        "password": "Test1234!",
    }


@pytest.fixture
def registered_user(client):
    """가입만 된 유저 (로그인 X)"""
    payload = make_user_payload("auth")
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201
    return payload


@pytest.fixture
def logged_in_client(client, registered_user):
    """로그인까지 마친 클라이언트 — 쿠키 저장소에 세션 토큰이 들어 있음"""
    response = client.post("/api/auth/login", json={
        "email": registered_user["email"],
        "password": registered_user["password"],
    })
    assert response.status_code == 200
    return client
