"""
Async session factory for the persistence adapter.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def create_session_factory(
    database_url: str, echo: bool = False
) -> async_sessionmaker[AsyncSession]:
    """
    Build an async session factory.

    Args:
        database_url: SQLAlchemy async URL (e.g. ``sqlite+aiosqlite:///mlm.db``)
        echo: Log SQL statements

    Returns:
        Session factory
    """
    engine = create_async_engine(database_url, echo=echo)
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
