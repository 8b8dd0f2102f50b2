"""
Database utility functions for consistent session management.

Sessions are never shared between threads; anything that fans work out to a
thread pool takes a session *factory* and opens its own session per unit of
work.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Generator, Optional

from sqlalchemy.orm import Session

from facility_risk.db.session import SessionLocal

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


@contextmanager
def get_db_session(session_factory: Optional[SessionFactory] = None) -> Generator[Session, None, None]:
    """
    Get a database session with proper cleanup using context manager.

    Commits on success, rolls back and re-raises on any exception.

    Usage:
        with get_db_session() as db:
            result = db.query(Model).all()
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Database session error: {e}")
        raise
    finally:
        db.close()
