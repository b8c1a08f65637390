"""
Talaty eKYC - Database Configuration
SQLAlchemy engine and sessions for the URL in talaty.config (PostgreSQL
in deployment, SQLite for local runs and tests).
"""
from contextlib import contextmanager
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import DATABASE_URL, DATABASE_ECHO

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # Request handlers run in a threadpool; one SQLite connection is shared
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(DATABASE_URL, echo=DATABASE_ECHO, **_engine_options(DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


def get_db():
    """Dependency for FastAPI - yields database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope():
    """
    Session for code outside a request (scripts, one-off jobs).
    Rolls back and re-raises on error; always closes.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """Create any missing tables for users, documents, forms, scores and audit logs."""
    # Models must be imported so their tables register on Base.metadata
    from .models import db_models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready: {sorted(Base.metadata.tables)}")
