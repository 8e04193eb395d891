import re
from sqlalchemy import inspect, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from core.errors import DuplicateKeyError
from core.security import check_password, hash_password
from models.users import User

# SQLite: "UNIQUE constraint failed: users.email"
# PostgreSQL: 'duplicate key value violates unique constraint "ix_users_email"' / "Key (email)=..."
_UNIQUE_FIELD_PATTERN = re.compile(
    r"users\.(email|username)\b|ix_users_(email|username)\b|Key \((email|username)\)"
)


def _duplicate_field(error: IntegrityError) -> str | None:
    match = _UNIQUE_FIELD_PATTERN.search(str(error.orig))
    if not match:
        return None
    return next(group for group in match.groups() if group)


def _select_user(include_hash: bool):
    stmt = select(User)
    if include_hash:
        stmt = stmt.options(undefer(User.password_hash))
    return stmt


async def find_by_email_or_username(db: AsyncSession, email: str, username: str) -> User | None:
    """가입 전 중복 확인 — 두 필드가 서로 다른 유저와 겹치면 이메일 쪽을 우선 반환"""
    result = await db.execute(
        select(User).where(or_(User.email == email, User.username == username))
    )
    users = list(result.scalars().all())
    for user in users:
        if user.email == email:
            return user
    return users[0] if users else None


async def find_by_email(db: AsyncSession, email: str, include_hash: bool = False) -> User | None:
    """이메일로 유저 조회 (로그인 검증 시에만 include_hash=True)"""
    result = await db.execute(_select_user(include_hash).where(User.email == email))
    return result.scalars().first()


async def find_by_id(db: AsyncSession, user_id: str, include_hash: bool = False) -> User | None:
    """id로 유저 조회 (인증 미들웨어용, 해시 제외)"""
    result = await db.execute(_select_user(include_hash).where(User.id == user_id))
    return result.scalars().first()


async def create(db: AsyncSession, username: str, email: str, plain_password: str) -> User:
    """
    유저 저장 — 비밀번호는 여기서 해싱

    사전 중복 확인을 통과했더라도 동시에 같은 값이 들어오면 unique 인덱스가 막는다.
    이 경우 롤백 후 DuplicateKeyError(field)를 던진다 (부분 저장 없음).
    """
    user = User(
        username=username,
        email=email,
        password_hash=hash_password(plain_password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        field = _duplicate_field(exc)
        if field is None:
            raise
        raise DuplicateKeyError(field) from exc
    await db.refresh(user)  # DB에서 생성된 created_at 등을 가져옴
    return user


def verify_password(user: User, plain_password: str) -> bool:
    """저장된 해시와 비교 — 해시가 로드되지 않은 객체는 항상 False"""
    if "password_hash" in inspect(user).unloaded:
        return False
    return check_password(plain_password, user.password_hash)


async def delete(db: AsyncSession, user: User) -> None:
    """유저 삭제 (관리 스크립트/테스트용 — API로는 노출하지 않음)"""
    await db.delete(user)
    await db.commit()
