from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from portalapi.config import settings


def build_engine(database_url: str, debug: bool = False) -> Engine:
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=debug,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,  # drop dead connections before use
        pool_recycle=3600,
        echo=debug,
    )


engine = build_engine(settings.database_url, debug=settings.DEBUG)

# expire_on_commit=False keeps attributes readable after commit within a request
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)
