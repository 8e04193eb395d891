"""
에러 정규화 (Error Normalizer)

모든 실패 응답은 하나의 형태로만 나간다:
    {"success": false, "error": {"message": "...", "code": "..."}}

- AppError: 의도적으로 발생시키는 에러. kind(ErrorKind)로만 구분한다.
- DuplicateKeyError: 저장소의 unique 인덱스 위반 (동시 가입 경쟁 등)
- 그 외 예외: SERVER_ERROR(500). 상세 내용은 서버 로그에만 남긴다.
"""
from enum import Enum

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.logger import get_logger

logger = get_logger("errors")


class ErrorKind(Enum):
    VALIDATION = "validation"
    DUPLICATE = "duplicate"
    INVALID_CREDENTIALS = "invalid_credentials"
    NO_TOKEN = "no_token"
    INVALID_TOKEN = "invalid_token"
    TOKEN_MALFORMED = "token_malformed"
    TOKEN_BAD_SIGNATURE = "token_bad_signature"
    TOKEN_EXPIRED = "token_expired"
    USER_NOT_FOUND = "user_not_found"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    AUTH_ERROR = "auth_error"
    SERVER = "server"


# kind → (code, HTTP status, 기본 메시지)
# 새 kind를 추가하면 여기에도 반드시 추가 (tests/test_errors.py가 검사)
ERROR_TABLE: dict[ErrorKind, tuple[str, int, str]] = {
    ErrorKind.VALIDATION: ("VALIDATION_ERROR", 400, "Invalid request"),
    ErrorKind.DUPLICATE: ("DUPLICATE_ERROR", 400, "Resource already exists"),
    ErrorKind.INVALID_CREDENTIALS: ("INVALID_CREDENTIALS", 401, "Invalid email or password"),
    ErrorKind.NO_TOKEN: ("NO_TOKEN", 401, "Authentication required. Please log in."),
    ErrorKind.INVALID_TOKEN: ("INVALID_TOKEN", 401, "Invalid or expired token. Please log in again."),
    ErrorKind.TOKEN_MALFORMED: ("INVALID_TOKEN", 401, "Invalid token"),
    ErrorKind.TOKEN_BAD_SIGNATURE: ("INVALID_TOKEN", 401, "Invalid token"),
    ErrorKind.TOKEN_EXPIRED: ("TOKEN_EXPIRED", 401, "Token expired"),
    ErrorKind.USER_NOT_FOUND: ("USER_NOT_FOUND", 401, "User not found."),
    ErrorKind.RATE_LIMITED: ("RATE_LIMIT_EXCEEDED", 429, "Too many requests, please try again later"),
    ErrorKind.NOT_FOUND: ("NOT_FOUND", 404, "Not found"),
    ErrorKind.PAYLOAD_TOO_LARGE: ("PAYLOAD_TOO_LARGE", 413, "Request body too large"),
    ErrorKind.AUTH_ERROR: ("AUTH_ERROR", 500, "Authentication error"),
    ErrorKind.SERVER: ("SERVER_ERROR", 500, "Internal server error"),
}


class AppError(Exception):
    """kind로 구분되는 애플리케이션 에러"""

    def __init__(self, kind: ErrorKind, message: str | None = None, field: str | None = None,
                 headers: dict[str, str] | None = None):
        self.kind = kind
        self.message = message or ERROR_TABLE[kind][2]
        self.field = field
        self.headers = headers
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return ERROR_TABLE[self.kind][0]

    @property
    def status_code(self) -> int:
        return ERROR_TABLE[self.kind][1]


class DuplicateKeyError(Exception):
    """unique 인덱스 위반 — field는 충돌한 컬럼 이름 (email / username)"""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"duplicate value for {field}")


def error_body(code: str, message: str) -> dict:
    return {"success": False, "error": {"message": message, "code": code}}


def error_response(kind: ErrorKind, message: str | None = None,
                   headers: dict[str, str] | None = None) -> JSONResponse:
    """핸들러에서 예상된 실패(중복, 잘못된 자격증명)를 바로 반환할 때 사용"""
    code, status_code, default_message = ERROR_TABLE[kind]
    return JSONResponse(
        status_code=status_code,
        content=error_body(code, message or default_message),
        headers=headers,
    )


def _format_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        msg = str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
        loc = [part for part in err.get("loc", ()) if part != "body"]
        if loc and isinstance(loc[-1], str):
            msg = f"{loc[-1]}: {msg}"
        messages.append(msg)
    return ", ".join(messages) or ERROR_TABLE[ErrorKind.VALIDATION][2]


# === FastAPI exception handlers ===

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return error_response(exc.kind, exc.message, headers=exc.headers)


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    logger.info(
        "Unique index rejected insert",
        extra={"extra_data": {"field": exc.field, "path": request.url.path}},
    )
    return error_response(ErrorKind.DUPLICATE, f"{exc.field.capitalize()} already exists")


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(ErrorKind.VALIDATION, _format_validation_errors(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = "NOT_FOUND" if exc.status_code == 404 else "SERVER_ERROR"
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # 스택 트레이스는 로그에만, 클라이언트에는 일반 메시지만
    logger.exception(
        "Unhandled error",
        exc_info=exc,
        extra={"extra_data": {"path": request.url.path}},
    )
    return error_response(ErrorKind.SERVER)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
