"""Database Connection and Session Management"""

import re
import ssl
from typing import Any, AsyncGenerator, Dict, Tuple

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from app.config import settings

# Base class for declarative models
Base = declarative_base()


def normalize_database_url(url: str) -> Tuple[str, Dict[str, Any]]:
    """
    Convert a configured URL into an async driver URL plus connect_args.

    postgresql:// becomes postgresql+asyncpg://. asyncpg uses ssl=SSLContext or True,
    not sslmode, so sslmode is stripped from the URL (asyncpg#737, SQLAlchemy#6275).
    """
    database_url = url.replace("postgresql://", "postgresql+asyncpg://")
    connect_args: Dict[str, Any] = {}
    if re.search(r"[?&]sslmode=(require|required|verify-full)", database_url, re.I):
        # RDS certs can fail CERTIFICATE_VERIFY_FAILED; encrypt without verifying
        _ssl_ctx = ssl.create_default_context()
        _ssl_ctx.check_hostname = False
        _ssl_ctx.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = _ssl_ctx
        database_url = re.sub(r"[?&]sslmode=[^&]+", "", database_url, flags=re.I)
        database_url = re.sub(r"\?&", "?", database_url).rstrip("?")
    if "?&" in database_url:
        database_url = database_url.replace("?&", "?")
    return database_url, connect_args


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE rules unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Process-wide storage handle: one async engine (connection pool) and its session factory.

    Constructed once by the application factory and passed explicitly to the
    request dependency, the usage tracker and the billing scheduler.
    """

    def __init__(self, url: str, echo: bool = False):
        database_url, connect_args = normalize_database_url(url)
        engine_kwargs: Dict[str, Any] = {
            "connect_args": connect_args,
            "echo": echo,
        }
        if not database_url.startswith("sqlite"):
            # pool_pre_ping detects stale RDS connections
            engine_kwargs.update(
                pool_pre_ping=True,
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                pool_recycle=settings.DB_POOL_RECYCLE,
            )
        self.url = database_url
        self.engine = create_async_engine(database_url, **engine_kwargs)
        if database_url.startswith("sqlite"):
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def init_db(self) -> None:
        """Create database tables (for development and tests only)"""
        # Register every mapped table on Base.metadata
        import app.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Close database connections"""
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function to get a database session from the application's Database.

    Commits when the handler succeeds, rolls back when it raises.

    Example:
        ```python
        @router.get("/products")
        async def list_products(db: AsyncSession = Depends(get_db)):
            ...
        ```
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
