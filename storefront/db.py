from contextlib import contextmanager
import logging
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from storefront.config import settings
from storefront.exceptions import StoreError


logger = logging.getLogger(__name__)

Base = declarative_base()


def enable_sqlite_write_locks(engine: Engine) -> Engine:
    """Start every SQLite transaction with BEGIN IMMEDIATE.

    SQLite ignores ``SELECT ... FOR UPDATE``; taking the database write lock
    when the transaction begins gives the same serialization of concurrent
    stock mutations that row locks give on PostgreSQL.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def create_db_engine(url: str | None = None, *, echo: bool | None = None) -> Engine:
    url = url or settings.DATABASE_URL
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(
        url,
        connect_args=connect_args,
        pool_pre_ping=True,
        echo=settings.SQL_ECHO if echo is None else echo,
    )
    if url.startswith("sqlite") and ":memory:" not in url and url.rstrip("/") not in {"sqlite:", "sqlite+pysqlite:"}:
        enable_sqlite_write_locks(engine)
    return engine


engine = create_db_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction_scope(db: Session) -> Iterator[Session]:
    """Commit on success; roll back on any failure before re-raising."""
    try:
        yield db
        db.commit()
    except StoreError:
        db.rollback()
        raise
    except Exception:
        logger.exception("Unexpected error inside transaction; rolling back")
        try:
            db.rollback()
        except Exception:
            logger.exception("Rollback failed")
        raise
