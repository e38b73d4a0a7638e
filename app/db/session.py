from sqlalchemy import BigInteger, Integer
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from app.core.config import settings

engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True, pool_recycle=3600)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)
Base = declarative_base()

# SQLite 只对 INTEGER 主键自增
BigIntId = BigInteger().with_variant(Integer, "sqlite")

async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session
