# wappy/db/registry.py
"""
Registry database sessions.

The registry is queried once or twice per request and nothing is kept
open in between, so the engine uses NullPool: closing a session really
closes the connection.
"""
import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Callable, Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from wappy.core import config

log = logging.getLogger("wappy.registry")

RegistrySessionFactory = Callable[[], Session]


# ────────────────────────────────────────────
# SQLAlchemy Engine
# ────────────────────────────────────────────
@lru_cache
def get_registry_engine() -> Engine:
    return create_engine(
        config.REGISTRY_DATABASE_URL,
        poolclass=NullPool,
        connect_args={"connect_timeout": config.DB_CONNECT_TIMEOUT},
        echo=False
    )


def get_registry_session_factory() -> RegistrySessionFactory:
    """Session factory bound to the configured registry engine"""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_registry_engine())


# ────────────────────────────────────────────
# Context Manager
# ────────────────────────────────────────────
@contextmanager
def registry_session(factory: RegistrySessionFactory = None) -> Iterator[Session]:
    """
    Short-lived registry session, closed on every exit path.

    Usage:
        with registry_session() as db:
            db.execute(select(Client)).first()
    """
    factory = factory or get_registry_session_factory()
    db = factory()
    try:
        yield db
    finally:
        db.close()


def check_registry_connection() -> bool:
    """Test registry connection"""
    try:
        with registry_session() as db:
            db.execute(text("SELECT 1"))
        log.info("✅ Registry connection successful")
        return True
    except Exception as e:
        log.error(f"❌ Registry connection failed: {e}")
        return False
