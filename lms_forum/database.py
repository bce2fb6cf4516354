from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from lms_forum.config import (
    DATABASE_URL,
    DB_ECHO,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_STATEMENT_TIMEOUT_MS,
)
from typing import AsyncGenerator

engine = create_async_engine(
    DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://"),
    echo=DB_ECHO,
    future=True,
    pool_size=DB_POOL_SIZE,
    pool_timeout=DB_POOL_TIMEOUT,
    pool_pre_ping=True,
    connect_args={"command_timeout": DB_STATEMENT_TIMEOUT_MS / 1000},
)

AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
Base = declarative_base()

# Dependency for FastAPI routes
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
