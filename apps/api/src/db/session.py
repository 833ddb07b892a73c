"""
Database engine and request-scoped sessions.

PostgreSQL is the production database. SQLite URLs work for local runs and
tests but do not enforce the reservation overlap constraints.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator

from src.core.config import get_settings


def build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True)


def enforces_overlap_constraints(engine: Engine) -> bool:
    """Whether the database itself rejects overlapping reservations."""
    return engine.dialect.name == "postgresql"


engine = build_engine(get_settings().DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a session for one request, closing it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
