from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .engine import engine


# Stores open one short-lived session per call and commit it themselves
async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
