from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db
from core.errors import AppError, ErrorKind
from core.logger import get_logger
from core.security import token_service
from models.users import User
from repository import user_repo

logger = get_logger("auth")


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> User:
    """
    인증 미들웨어 (보호된 라우트의 Depends)

    1. 쿠키 없음            → NO_TOKEN (401)
    2. 토큰 검증 실패        → INVALID_TOKEN (401) — 형식 오류/서명/만료를 구분해서 알려주지 않는다
    3. 토큰의 유저가 DB에 없음 → USER_NOT_FOUND (401)
    4. 성공                 → request.state.user에 저장 후 반환
    그 외 예외(DB 장애 등)는 AUTH_ERROR (500)
    """
    token = request.cookies.get(settings.cookie_name)
    if not token:
        raise AppError(ErrorKind.NO_TOKEN)

    try:
        try:
            payload = token_service.verify(token)
        except AppError as exc:
            logger.info(
                "Rejected session token",
                extra={"extra_data": {"reason": exc.kind.value}},
            )
            raise AppError(ErrorKind.INVALID_TOKEN)

        user = await user_repo.find_by_id(db, payload.user_id)
        if user is None:
            raise AppError(ErrorKind.USER_NOT_FOUND)
    except AppError:
        raise
    except Exception:
        logger.exception("Authentication failed unexpectedly")
        raise AppError(ErrorKind.AUTH_ERROR)

    request.state.user = user
    return user
