from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.config import settings

Base = declarative_base()


def utcnow() -> datetime:
    # 统一使用不带时区的 UTC 时间入库，SQLite 不保存时区
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enable_sqlite_write_locks(engine: AsyncEngine) -> None:
    # SQLite 没有行锁：事务一开始就拿写锁，并发写入按提交顺序串行
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str | None = None, *, echo: bool | None = None) -> AsyncEngine:
    url = url or settings.database_url
    echo = settings.DATABASE_ECHO if echo is None else echo
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=echo, connect_args={"timeout": settings.SQLITE_BUSY_TIMEOUT})
        _enable_sqlite_write_locks(engine)
        return engine
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine()
AsyncSessionLocal = build_sessionmaker(engine)


async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def atomic(db: AsyncSession):
    # 一个事务单元：成功提交，任何异常整体回滚
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise


def import_models() -> None:
    # 注册所有表到 Base.metadata
    import models.account  # noqa: F401
    import models.wallet  # noqa: F401
    import models.profile  # noqa: F401
    import models.level  # noqa: F401
    import models.gift  # noqa: F401
    import models.coins  # noqa: F401
    import models.stream  # noqa: F401
    import models.chat  # noqa: F401
    import models.bonus  # noqa: F401
    import models.logs  # noqa: F401


async def create_tables(bind: AsyncEngine | None = None):
    import_models()
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables(bind: AsyncEngine | None = None):
    import_models()
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
