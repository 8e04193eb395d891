from collections.abc import AsyncGenerator
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from core.config import settings

# 1. Async 엔진 생성
#    - echo: 실행되는 SQL 출력 여부 (DB_ECHO 환경변수로 제어)
#    - pool_pre_ping: 끊어진 커넥션을 재사용하지 않도록 체크
engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    pool_pre_ping=True,
)


# 2. 세션 팩토리
#    - expire_on_commit=False: commit 후에도 객체 속성에 접근 가능
#      (True면 commit 후 속성 접근 시 LazyLoad → async에서 에러 발생)
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


# 3. Base 클래스 — 모든 모델이 상속받는 부모
class Base(DeclarativeBase):
    pass


# 4. DB 세션 DI (Dependency Injection)
#    FastAPI의 Depends()에서 사용
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


async def check_database() -> None:
    """기동 시 DB 연결 확인 — 실패하면 예외가 그대로 올라가 서버가 뜨지 않는다"""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
