# bintrack/database.py
"""
Database connection, session management, and table creation.
Only the account/ticket boundary is persisted — bin state lives in memory.
All models are imported in create_tables() so one call creates every table.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from bintrack.config import settings

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,          # Auto-reconnect if DB connection drops
    pool_size=5,
    max_overflow=10,
    echo=False,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency — yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Creates all DB tables. Safe to call multiple times."""
    from bintrack.models.consumer import Consumer                # noqa
    from bintrack.models.support_request import SupportRequest   # noqa

    Base.metadata.create_all(bind=engine)
