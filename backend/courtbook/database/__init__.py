"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from courtbook.core.config import settings

logger = logging.getLogger(__name__)

_DEFAULT_POOL_KWARGS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 5,
    "pool_recycle": 300,
    "pool_pre_ping": True,
}


class Base(DeclarativeBase):
    pass


def _enable_sqlite_immediate_transactions(engine: Engine) -> None:
    """
    Run every SQLite transaction as BEGIN IMMEDIATE.

    pysqlite's deferred transactions let two writers both read a slot as free
    and then fail to upgrade their locks. Taking the write lock at BEGIN
    serializes check-then-insert sequences; concurrent writers queue on the
    busy timeout instead.
    """

    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(db_url: Optional[str] = None, *, echo: Optional[bool] = None) -> Engine:
    """Build an engine for PostgreSQL (pooled) or SQLite (serialized writers)."""
    url = db_url or settings.database_url
    echo = settings.database_echo if echo is None else echo

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=echo,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.sqlite_busy_timeout_seconds,
            },
        )
        _enable_sqlite_immediate_transactions(engine)
    else:
        engine = create_engine(url, echo=echo, **_DEFAULT_POOL_KWARGS)

    @event.listens_for(engine, "connect")
    def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
        connection_record.info["connect_time"] = datetime.now()
        logger.debug("Database connection established")

    return engine


engine: Engine = create_db_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """Create tables and seed the static court inventory (idempotent)."""
    from courtbook import models  # noqa: F401  (register mappers)
    from courtbook.models.court import seed_courts

    target = bind or engine
    Base.metadata.create_all(bind=target)
    with Session(bind=target) as session:
        seed_courts(session)
        session.commit()
    logger.info("Database initialized")
