from datetime import datetime
from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, mapped_column


class TimestampMixin:
    """
    생성/수정 시간 공통 컬럼

    - server_default=func.now(): DB 서버 시간 기준 (앱 서버 시간 X)
    - onupdate=func.now(): UPDATE 쿼리 시 자동으로 갱신
    - 인증 흐름에서 User는 수정되지 않으므로 created_at만 응답에 노출된다
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
