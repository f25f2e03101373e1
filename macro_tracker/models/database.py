"""
SQLAlchemy base and engine helpers for the tracker schema.

The hosted store owns the live tables; this metadata is used to create them
on a self-hosted Postgres (see scripts/init_schema.py) and in tests.
"""
import logging
import uuid
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


def init_db(database_url: Optional[str], echo: bool = False) -> Engine:
    """Create every table on `database_url` and return the engine."""
    if not database_url:
        raise ValueError("DATABASE_URL is not configured")
    # Importing the models registers them on Base.metadata
    from macro_tracker import models  # noqa: F401

    engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
    Base.metadata.create_all(bind=engine)
    logger.info("Tracker tables created: %s", ", ".join(sorted(Base.metadata.tables)))
    return engine
