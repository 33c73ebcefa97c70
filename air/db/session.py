"""
Database session management - SQLAlchemy engine and session factory.

The memory database is a single SQLite file under DATA_DIR. Tests build
their own in-memory engine and pass a session factory to SQLMemoryStore.
"""

from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from air.core.config import Settings, settings
from air.db.base import Base


def create_memory_engine(config: Optional[Settings] = None) -> Engine:
    """
    Create the engine and make sure every table exists.

    For file-backed SQLite the parent directory is created first.
    check_same_thread is disabled because store calls run in worker
    threads via asyncio.to_thread.
    """
    config = config or settings
    url = config.database_url

    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        db_path = url.split(":///", 1)[1] if ":///" in url else ""
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)

    # Register models on Base.metadata before create_all
    import air.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    # SessionLocal-style factory: call it to get a Session
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
