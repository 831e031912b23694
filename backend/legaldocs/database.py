"""数据库连接和会话管理

Review note:
- 业务实体（主题、方面、法律依据、条款、需求、识别记录）统一放在一个库。
- 后台任务不走 FastAPI 依赖注入，直接用 `async_session_maker()` 开新会话。
"""
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool, StaticPool
from typing import AsyncGenerator

from legaldocs.config import settings


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    if ":memory:" in url:
        # 内存库只能共用同一个连接
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    # 后台任务和请求会同时写库：每个会话独立连接，由 sqlite 的锁等待串行化写入
    return {
        "connect_args": {"check_same_thread": False, "timeout": 30},
        "poolclass": NullPool,
    }


# 创建异步引擎
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_kwargs(settings.DATABASE_URL),
)

# 创建会话工厂
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """获取数据库会话的依赖注入函数"""
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """初始化数据库表"""
    from legaldocs.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
