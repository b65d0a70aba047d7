from sqlalchemy import create_engine, pool, event
from sqlalchemy.orm import sessionmaker, declarative_base
import logging

from moviecritic import config

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    """Pick pool settings for the configured backend."""
    if url.startswith("sqlite"):
        # SQLite connections are shared across FastAPI's threadpool workers
        return {"connect_args": {"check_same_thread": False}}

    # QueuePool maintains a pool of connections that can be reused
    return {
        "poolclass": pool.QueuePool,
        "pool_size": config.DB_POOL_SIZE,
        "max_overflow": config.DB_MAX_OVERFLOW,
        "pool_timeout": config.DB_POOL_TIMEOUT,
        "pool_recycle": config.DB_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


engine = create_engine(
    config.DATABASE_URL,
    echo=config.DB_ECHO,  # Set DB_ECHO=true for SQL debugging
    **_engine_options(config.DATABASE_URL)
)


def enable_sqlite_foreign_keys(dbapi_conn) -> None:
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@event.listens_for(engine, "connect")
def receive_connect(dbapi_conn, connection_record):
    """Log when a new connection is created"""
    if engine.dialect.name == "sqlite":
        enable_sqlite_foreign_keys(dbapi_conn)
    logger.debug("Database connection established")


@event.listens_for(engine, "checkout")
def receive_checkout(dbapi_conn, connection_record, connection_proxy):
    """Log when a connection is checked out from the pool"""
    logger.debug("Connection checked out from pool")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# Dependency for FastAPI routes
def get_db():
    """
    Database session dependency for FastAPI.
    One session per request; services commit or roll back explicitly.

    Usage:
        @router.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            # Use db here
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
