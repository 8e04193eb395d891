from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.security import DUMMY_HASH, check_password
from models.users import User
from repository import user_repo
from schemas.auth import UserCreate

logger = get_logger("auth")


async def find_conflict(db: AsyncSession, user_in: UserCreate) -> str | None:
    """
    가입 전 중복 확인
    Returns:
        충돌한 필드 이름 ("email" 우선, 그다음 "username") / 충돌 없으면 None
    """
    existing = await user_repo.find_by_email_or_username(db, user_in.email, user_in.username)
    if existing is None:
        return None
    return "email" if existing.email == user_in.email else "username"


async def create_user(db: AsyncSession, user_in: UserCreate) -> User:
    """회원가입 — 동시 가입 경쟁에서 지면 DuplicateKeyError가 그대로 올라간다"""
    user = await user_repo.create(db, user_in.username, user_in.email, user_in.password)
    logger.info("User registered", extra={"extra_data": {"user_id": user.id}})
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User | None:
    """
    로그인 검증 — 실패 시 None (이유는 구분하지 않음)

    이메일이 없어도 더미 해시로 bcrypt를 한 번 돌려서
    응답 시간으로 가입 여부를 추측할 수 없게 한다.
    """
    user = await user_repo.find_by_email(db, email, include_hash=True)

    if user is None:
        check_password(password, DUMMY_HASH)
        return None
    if not user_repo.verify_password(user, password):
        return None

    return user
