from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from gateway.common.config import settings


def create_engine_for_url(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine, tuning SQLite so concurrent writers queue.

    pysqlite's implicit transaction handling is disabled and every
    transaction starts with BEGIN IMMEDIATE, so the quota counters are
    serialized by the database lock rather than failing with SQLITE_BUSY.
    """
    if make_url(url).get_backend_name() != "sqlite":
        return create_async_engine(url, echo=echo, future=True, pool_pre_ping=True)

    engine = create_async_engine(url, echo=echo, future=True, connect_args={"timeout": 30})

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


# Create async engine
engine = create_engine_for_url(settings.database_url, echo=settings.debug)

# Create async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Base class for models
Base = declarative_base()


async def get_db() -> AsyncSession:
    """Dependency for getting async database sessions.

    Note: Each usecase is responsible for committing its transactions.
    This only handles rollback for uncaught exceptions.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def gateway_tables():
    """Tables owned by the gateway, leaving out external business datasets."""
    return [table for table in Base.metadata.sorted_tables if not table.info.get("external")]


async def init_db(bind: AsyncEngine | None = None):
    """Initialize the gateway's own tables."""
    # Import models so every table is registered on Base.metadata
    import gateway.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=gateway_tables())


async def close_db():
    """Close database connections."""
    await engine.dispose()
