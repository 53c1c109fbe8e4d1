from contextlib import contextmanager
import hashlib

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from .config import settings

# Create engine
connect_args = {}
if "sqlite" in settings.DATABASE_URL:
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=connect_args,
    pool_pre_ping=True,
    echo=settings.DEBUG
)


def install_sqlite_pragmas(target_engine):
    """WAL for concurrent readers, and SQLite only enforces FKs when asked."""
    @event.listens_for(target_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


if "sqlite" in settings.DATABASE_URL:
    install_sqlite_pragmas(engine)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()

# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session):
    """
    One commit per external write.

    The ledger row and every derived row recomputed because of it are
    committed together; any exception rolls all of it back and re-raises.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def _lock_key(namespace: str, *parts) -> int:
    raw = ":".join([namespace] + ["" if p is None else str(p) for p in parts])
    digest = hashlib.blake2b(raw.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


def advisory_lock(db: Session, namespace: str, *parts) -> None:
    """
    Serialize read-aggregate-upsert sequences on one key.

    Transaction scoped on PostgreSQL (released on commit/rollback).
    SQLite has a single writer already, so nothing to do there.
    """
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": _lock_key(namespace, *parts)})
