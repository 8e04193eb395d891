from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import get_current_user
from core.database import get_db
from core.errors import ErrorKind, error_response
from core.logger import get_logger
from core.rate_limit import client_address, login_limiter, register_limiter
from core.security import clear_session_cookie, set_session_cookie, token_service
from models.users import User
from schemas.auth import (
    AuthData,
    LoginRequest,
    MessageData,
    SuccessResponse,
    UserCreate,
    UserData,
    UserProfile,
    UserPublic,
)
from service.auth_service import authenticate_user, create_user, find_conflict

logger = get_logger("auth")

router = APIRouter()

DUPLICATE_MESSAGES = {
    "email": "Email already registered",
    "username": "Username already taken",
}


def _envelope(data: BaseModel, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """{"success": true, "data": {...}} — 쿠키를 붙여야 해서 Response 객체로 직접 만든다"""
    return JSONResponse(
        status_code=status_code,
        content={"success": True, "data": data.model_dump(mode="json", by_alias=True)},
    )


@router.post(
    "/register",
    response_model=SuccessResponse[AuthData],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(register_limiter.dependency())],
)
async def register(user_in: UserCreate, db: AsyncSession = Depends(get_db)):
    """새로운 사용자를 등록합니다. (1시간 3회 제한)"""
    # 1. 사전 중복 확인 — 예상된 실패는 바로 반환
    field = await find_conflict(db, user_in)
    if field:
        return error_response(ErrorKind.DUPLICATE, DUPLICATE_MESSAGES[field])

    # 2. 생성 (경쟁 상황의 중복은 DuplicateKeyError → 에러 핸들러)
    user = await create_user(db, user_in)
    data = AuthData(message="User registered successfully", user=UserPublic.model_validate(user))
    return _envelope(data, status.HTTP_201_CREATED)


@router.post(
    "/login",
    response_model=SuccessResponse[AuthData],
    dependencies=[Depends(login_limiter.dependency())],
)
async def login(request: Request, credentials: LoginRequest, db: AsyncSession = Depends(get_db)):
    """이메일/비밀번호를 확인하고 세션 쿠키를 발급합니다. (15분 5회 제한)"""
    user = await authenticate_user(db, credentials.email, credentials.password)
    if user is None:
        # 이메일 없음 / 비밀번호 틀림 모두 동일한 응답
        logger.info("Login failed", extra={"extra_data": {"client": client_address(request)}})
        return error_response(ErrorKind.INVALID_CREDENTIALS, headers={"Cache-Control": "no-store"})

    token = token_service.issue(user.id, user.email)
    response = _envelope(AuthData(message="Login successful", user=UserPublic.model_validate(user)))
    set_session_cookie(response, token)
    response.headers["Cache-Control"] = "no-store"

    logger.info("Login succeeded", extra={"extra_data": {"user_id": user.id}})
    return response


@router.post("/logout", response_model=SuccessResponse[MessageData])
async def logout():
    """세션 쿠키를 지웁니다. 쿠키가 없어도 항상 성공 (토큰 자체는 만료까지 유효)"""
    response = _envelope(MessageData(message="Logout successful"))
    clear_session_cookie(response)
    return response


@router.get("/verify", response_model=SuccessResponse[AuthData])
async def verify(current_user: User = Depends(get_current_user)):
    """세션이 유효한지 확인 — 클라이언트 세션 캐시 갱신용"""
    return _envelope(AuthData(message="Token is valid", user=UserPublic.model_validate(current_user)))


@router.get("/me", response_model=SuccessResponse[UserData])
async def me(current_user: User = Depends(get_current_user)):
    """현재 로그인한 사용자 정보 (가입 시각 포함)"""
    return _envelope(UserData(user=UserProfile.model_validate(current_user)))
