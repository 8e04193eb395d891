import asyncio
import sys
import os
from logging.config import fileConfig

# 상위 폴더(backend)를 sys.path에 추가하여 absolute import가 가능하게 함
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context
from core.config import settings
from core.database import Base
from models.users import User  # noqa: F401  metadata에 users 테이블 등록

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# alembic.ini에 url이 없으면 앱 설정(DATABASE_URL)을 그대로 사용
database_url = config.get_main_option("sqlalchemy.url") or settings.database_url

# SQLite는 ALTER TABLE 제약이 많아서 batch 모드로 마이그레이션
render_as_batch = database_url.startswith("sqlite")


def run_migrations_offline():
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=render_as_batch,
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=render_as_batch,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online():
    connectable = create_async_engine(database_url)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
