"""Database package: engine, session factory, init_db(), get_session()."""

import threading
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import Engine, create_engine, inspect
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stocksync.config import DATABASE_SEED_ON_CREATE, DATABASE_URL
from stocksync.db.base import Base

# Import all models so Base.metadata has all tables
from stocksync.db.models import (  # noqa: F401
    LocationRecord,
    MovementRecord,
    ProductRecord,
    ProductStockRecord,
    VariantConfigRecord,
    VariationRecord,
    VariationStockRecord,
)

_init_lock = threading.Lock()
_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None


def make_engine(url: str) -> Engine:
    """Create engine; SQLite gets check_same_thread=False, and in-memory SQLite a single shared connection."""
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(url, echo=False, pool_pre_ping=True)


def create_session_factory(url: str, seed: bool = False) -> sessionmaker:
    """Create tables on a fresh engine and return its session factory. Seeds demo data when asked and the DB is new."""
    engine = make_engine(url)
    is_new = not inspect(engine).has_table("products")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    if is_new and seed:
        from stocksync.db.seed_data import seed_demo_data

        with session_scope(factory) as session:
            seed_demo_data(session)
    return factory


def init_db() -> None:
    """Create the default engine and tables; seed from CSV when the tables are first created."""
    global _engine, _SessionLocal
    with _init_lock:
        if _SessionLocal is not None:
            return
        _SessionLocal = create_session_factory(DATABASE_URL, seed=DATABASE_SEED_ON_CREATE)
        _engine = _SessionLocal.kw["bind"]


def get_session_factory() -> sessionmaker:
    """Return the default session factory, initializing the database on first use."""
    init_db()
    return _SessionLocal


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """Yield a session from factory; commit on success, roll back on error."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Context manager yielding a DB session. Calls init_db() on first use."""
    with session_scope(get_session_factory()) as session:
        yield session
