import uuid
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column
from models.base import TimestampMixin
from core.database import Base


class User(TimestampMixin, Base):
    """
    사용자 모델 — 인증 흐름의 유일한 영속 엔티티

    - id: UUID v4 (생성 시 부여, 변경 불가)
    - username / email: 각각 unique 인덱스 (동시 가입 경쟁은 인덱스가 막는다)
    - password_hash: deferred — 기본 조회에서 빠지고, 로그인 검증 때만 명시적으로 로드
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    username: Mapped[str] = mapped_column(
        String(30),
        unique=True,
        index=True,
        nullable=False,
    )

    # 항상 소문자로 정규화해서 저장
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )

    # bcrypt 해시 (60자). 평문 비밀번호는 어디에도 저장하지 않는다
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        deferred=True,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username}>"
