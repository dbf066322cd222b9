from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from libs.common.config import Settings, get_settings


def install_sqlite_pragmas(engine: AsyncEngine) -> None:
    """Enforce foreign keys on every SQLite connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for ``settings.DATABASE_URL``.

    PostgreSQL sessions get explicit lock and statement timeouts so a
    transaction waiting on a contended product row fails instead of hanging.
    SQLite writers wait on the busy timeout for the same reason.
    """
    if settings.is_sqlite:
        engine = create_async_engine(
            settings.DATABASE_URL,
            echo=False,
            connect_args={"timeout": settings.DB_LOCK_TIMEOUT_MS / 1000},
        )
        install_sqlite_pragmas(engine)
        return engine

    return create_async_engine(
        settings.DATABASE_URL,
        echo=(settings.ENVIRONMENT == "local"),
        pool_pre_ping=True,  # Test connections before using
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        connect_args={
            "options": (
                f"-c lock_timeout={settings.DB_LOCK_TIMEOUT_MS} "
                f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"
            )
        },
    )


engine = build_engine(get_settings())

AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)
