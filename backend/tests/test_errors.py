"""
에러 정규화 테스트 — 모든 실패 응답이 같은 envelope 형태인지
"""
from fastapi import FastAPI
from starlette.testclient import TestClient

from core.config import settings
from core.database import get_db
from core.errors import ERROR_TABLE, DuplicateKeyError, ErrorKind, register_exception_handlers
from core.security import token_service
from main import app


def _make_app() -> FastAPI:
    broken = FastAPI()
    register_exception_handlers(broken)

    @broken.get("/boom")
    async def boom():
        raise RuntimeError("connection string with secrets")

    @broken.get("/race")
    async def race():
        raise DuplicateKeyError("email")

    return broken


def test_모든_ErrorKind가_매핑되어_있음():
    assert set(ERROR_TABLE) == set(ErrorKind)
    codes = {code for code, _, _ in ERROR_TABLE.values()}
    assert {"VALIDATION_ERROR", "DUPLICATE_ERROR", "INVALID_CREDENTIALS", "NO_TOKEN",
            "INVALID_TOKEN", "TOKEN_EXPIRED", "USER_NOT_FOUND", "RATE_LIMIT_EXCEEDED"} <= codes


def test_예상치_못한_에러는_SERVER_ERROR_상세_숨김():
    client = TestClient(_make_app(), raise_server_exceptions=False)
    response = client.get("/boom")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": {"message": "Internal server error", "code": "SERVER_ERROR"},
    }
    assert "secrets" not in response.text


def test_unique_인덱스_위반은_DUPLICATE_ERROR():
    client = TestClient(_make_app())
    response = client.get("/race")

    assert response.status_code == 400
    assert response.json()["error"] == {"message": "Email already exists", "code": "DUPLICATE_ERROR"}


def test_없는_경로도_envelope(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json()["success"] is False
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_DB_장애시_인증은_AUTH_ERROR(client):
    class BrokenSession:
        async def execute(self, *args, **kwargs):
            raise RuntimeError("database unavailable")

    async def broken_db():
        yield BrokenSession()

    app.dependency_overrides[get_db] = broken_db
    client.cookies.set(settings.cookie_name, token_service.issue("some-id", "some@example.com"))

    response = client.get("/api/auth/me")
    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": {"message": "Authentication error", "code": "AUTH_ERROR"},
    }
    assert "database unavailable" not in response.text


def test_JSON이_아닌_바디는_VALIDATION_ERROR(client):
    response = client.post(
        "/api/auth/login",
        content="not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
