"""
Rate limiter 테스트
"""
import pytest

from conftest import FakeRedis, make_user_payload
from core.config import settings
from core.errors import AppError, ErrorKind
from core.rate_limit import RateLimiter


# ===== 단위 테스트 =====

@pytest.mark.anyio
async def test_한도까지는_통과_초과하면_거절():
    redis = FakeRedis()
    limiter = RateLimiter("unit", max_attempts=2, window_seconds=60, message="slow down")

    assert await limiter.hit(redis, "1.2.3.4", now=120.0) == 1
    assert await limiter.hit(redis, "1.2.3.4", now=130.0) == 2
    with pytest.raises(AppError) as exc_info:
        await limiter.hit(redis, "1.2.3.4", now=140.0)

    assert exc_info.value.kind is ErrorKind.RATE_LIMITED
    assert exc_info.value.message == "slow down"
    assert exc_info.value.headers == {"Retry-After": "40"}
    # 첫 요청에서만 TTL 설정
    assert list(redis.ttls.values()) == [60]


@pytest.mark.anyio
async def test_클라이언트와_윈도우별로_따로_센다():
    redis = FakeRedis()
    limiter = RateLimiter("unit", max_attempts=1, window_seconds=60, message="slow down")

    await limiter.hit(redis, "1.1.1.1", now=0.0)
    await limiter.hit(redis, "2.2.2.2", now=0.0)
    # 다음 윈도우에서는 다시 1부터
    assert await limiter.hit(redis, "1.1.1.1", now=61.0) == 1


# ===== API 테스트 =====

def test_로그인_6번째_시도는_429(client, db_calls):
    body = {"email": "nobody@example.com", "password": "Wrong1234!"}
    for _ in range(5):
        assert client.post("/api/auth/login", json=body).status_code == 401

    calls_before = len(db_calls)
    response = client.post("/api/auth/login", json=body)

    assert response.status_code == 429
    assert response.json() == {
        "success": False,
        "error": {
            "message": "Too many login attempts, please try again later",
            "code": "RATE_LIMIT_EXCEEDED",
        },
    }
    assert "retry-after" in response.headers
    # 거절된 요청은 DB 세션조차 열지 않는다
    assert len(db_calls) == calls_before


def test_올바른_비밀번호여도_한도_초과면_429(client, registered_user):
    wrong = {"email": registered_user["email"], "password": "Wrong1234!"}
    for _ in range(5):
        client.post("/api/auth/login", json=wrong)

    response = client.post("/api/auth/login", json={
        "email": registered_user["email"],
        "password": registered_user["password"],
    })
    assert response.status_code == 429
    assert "set-cookie" not in response.headers


def test_회원가입_4번째_시도는_429(client):
    for _ in range(3):
        assert client.post("/api/auth/register", json=make_user_payload("rl")).status_code == 201

    response = client.post("/api/auth/register", json=make_user_payload("rl"))
    assert response.status_code == 429
    assert response.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert response.json()["error"]["message"] == "Too many registration attempts, please try again later"


def test_잘못된_입력도_시도_횟수에_포함(client):
    """rate limit이 입력 검증보다 먼저 실행된다"""
    for _ in range(3):
        assert client.post("/api/auth/register", json={}).status_code == 400

    assert client.post("/api/auth/register", json={}).status_code == 429


def test_TRUST_PROXY면_X_Forwarded_For_첫_홉으로_센다(client, monkeypatch):
    monkeypatch.setattr(settings, "trust_proxy", True)
    body = {"email": "nobody@example.com", "password": "Wrong1234!"}

    for _ in range(5):
        response = client.post("/api/auth/login", json=body, headers={"X-Forwarded-For": "10.0.0.1, 172.16.0.1"})
        assert response.status_code == 401
    blocked = client.post("/api/auth/login", json=body, headers={"X-Forwarded-For": "10.0.0.1"})
    assert blocked.status_code == 429

    # 다른 첫 홉은 별도 카운트
    other = client.post("/api/auth/login", json=body, headers={"X-Forwarded-For": "10.0.0.2, 172.16.0.1"})
    assert other.status_code == 401


def test_TRUST_PROXY가_아니면_X_Forwarded_For_무시(client, monkeypatch):
    monkeypatch.setattr(settings, "trust_proxy", False)
    body = {"email": "nobody@example.com", "password": "Wrong1234!"}

    for i in range(5):
        response = client.post("/api/auth/login", json=body, headers={"X-Forwarded-For": f"10.0.0.{i}"})
        assert response.status_code == 401

    # 헤더를 바꿔도 같은 접속 주소라 한도 초과
    response = client.post("/api/auth/login", json=body, headers={"X-Forwarded-For": "10.9.9.9"})
    assert response.status_code == 429
