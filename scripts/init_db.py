import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from portalapi.database.connection import engine  # noqa: E402
from portalapi.models import Base  # noqa: E402


def init_db():
    """Create every portal table (periods, users, ledgers, store, enrollment)"""
    try:
        Base.metadata.create_all(bind=engine)
        print(f"Database initialized successfully: {engine.url.render_as_string()}")

    except Exception as e:
        print(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    init_db()
