"""
Client connections to the hosted Postgres

Only the tables the stores read and write are mapped; schema, row level
security and the RPC functions live on the backend service.
"""
from typing import Iterator, Optional

import psycopg
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from pilotage.config import Settings, get_settings


class Base(DeclarativeBase):
    pass


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def build_engine(settings: Settings) -> Engine:
    """Engine for the hosted database, with connect options taken from settings"""
    return create_engine(
        settings.get_sqlalchemy_url(),
        pool_pre_ping=True,
        pool_size=settings.DATABASE_POOL_SIZE,
        connect_args=settings.get_connect_args(),
    )


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings())
    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), autoflush=False)
    return _session_factory


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request, closed afterwards"""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def check_db_connection(settings: Optional[Settings] = None) -> None:
    """
    Raw psycopg round trip used by the health endpoint

    Raises:
        psycopg.OperationalError: when the hosted database is unreachable
    """
    settings = settings or get_settings()
    with psycopg.connect(settings.get_psycopg_dsn(), **settings.get_connect_args()) as conn:
        conn.execute("SELECT 1").fetchone()
