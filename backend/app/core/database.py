from collections.abc import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.models.base import Base


def get_async_database_url(url: str) -> str:
    """Convert database URL to async format for SQLAlchemy + asyncpg.

    Hosting providers hand out postgres:// URLs but SQLAlchemy async requires
    postgresql+asyncpg:// format.
    """
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


class Database:
    """Owns the async engine and session factory for one application instance.

    Constructed by ``create_app``, opened when the app starts and closed at
    shutdown. Request handlers reach it through ``get_db``.
    """

    def __init__(self, url: str, echo: bool = False, **engine_kwargs):
        self.url = get_async_database_url(url)
        self.echo = echo
        self.engine_kwargs = engine_kwargs
        self._engine: AsyncEngine | None = None
        self._session_maker: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not open")
        return self._engine

    def open(self) -> None:
        if self._engine is not None:
            return
        kwargs = dict(self.engine_kwargs)
        if self.url.startswith("postgresql"):
            kwargs.setdefault("pool_pre_ping", True)
        self._engine = create_async_engine(self.url, echo=self.echo, **kwargs)
        self._session_maker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_maker = None

    async def create_all(self) -> None:
        """Create tables that don't exist yet."""
        # Import models to register them with Base
        from app.models import profile, user  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    def session(self) -> AsyncSession:
        if self._session_maker is None:
            raise RuntimeError("Database is not open")
        return self._session_maker()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency that provides a database session."""
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
