"""
Database engine, session management, and initialization.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from typing import Callable, Generator, Optional
import logging

from config.settings import settings
from db.models import Base

logger = logging.getLogger(__name__)


def make_engine(url: str, echo: bool = False) -> Engine:
    """Engine for `url`; in-memory SQLite shares one connection across threads."""
    if url.startswith("sqlite") and ":memory:" in url:
        return create_engine(
            url, connect_args={"check_same_thread": False}, poolclass=StaticPool, echo=echo,
        )
    return create_engine(
        url,
        connect_args={"check_same_thread": False} if "sqlite" in url else {},
        echo=echo,
    )


engine = make_engine(settings.DATABASE_URL, echo=settings.DEBUG)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all tables."""
    Base.metadata.create_all(bind=bind or engine)
    logger.info("✅ Database initialized.")


def make_session_factory(bind: Engine) -> Callable[[], Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


@contextmanager
def get_db(factory: Optional[Callable[[], Session]] = None) -> Generator[Session, None, None]:
    """Context manager for database sessions: commit on success, rollback on error."""
    db = (factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
