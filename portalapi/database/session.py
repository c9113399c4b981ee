from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from portalapi.database.connection import SessionLocal


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context():
    """Standalone session for work outside a request (background tasks, scripts)"""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or roll all of it back.

    Ledger mutations run inside one of these so the ledger insert and the
    cached balance update land together.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
