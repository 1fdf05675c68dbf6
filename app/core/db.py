from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from loguru import logger

from app.core.config import DATABASE_URL, DB_LOG_SQL

Base = declarative_base()

_is_sqlite = DATABASE_URL.startswith("sqlite")

# sqlite sessions are shared with the SSE/threadpool workers
engine = create_engine(
    DATABASE_URL,
    future=True,
    pool_pre_ping=not _is_sqlite,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
)

# rows are serialized for the broker after commit
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)


def _log_statement(conn, cursor, statement, parameters, context, executemany):
    logger.debug(f"SQL: {statement} | params={parameters}")


if DB_LOG_SQL:
    event.listen(engine, "before_cursor_execute", _log_statement)


def get_db():
    """Request-scoped session; uncommitted work is rolled back on error."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        logger.exception("Rolling back session after request error")
        db.rollback()
        raise
    finally:
        db.close()
