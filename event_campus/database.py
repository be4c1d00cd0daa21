from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from event_campus.config import DATABASE_URL




engine = create_async_engine(DATABASE_URL)

new_session = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
)


class Model(DeclarativeBase):
    pass


async def create_tables():
    """Create all tables that do not exist yet"""
    # every model must be imported so the metadata knows about it
    from event_campus import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Model.metadata.create_all)


async def delete_tables():
    """Drop all tables"""
    from event_campus import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Model.metadata.drop_all)
