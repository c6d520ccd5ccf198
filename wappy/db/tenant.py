# wappy/db/tenant.py
"""
Connections to the isolated per-tenant databases.

Every request opens its own connection and closes it before returning.
Engines use NullPool, so nothing is reused between requests; the engine
objects themselves are kept per URL only to avoid rebuilding dialects.
"""
import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from wappy.core import config
from wappy.core.errors import ConnectionFailed
from wappy.schemas.tenant import TenantProfile

log = logging.getLogger("wappy.tenant_db")

EngineFactory = Callable[..., Engine]


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class TenantConnectionFactory:
    """
    Opens connections to a tenant database from its resolved profile.

    Usage:
        factory = TenantConnectionFactory()
        with factory.connect(profile) as db:
            db.execute(select(InboundMessage)).scalars().all()
    """

    def __init__(
        self,
        host_override: Optional[str] = None,
        port: Optional[int] = None,
        charset: Optional[str] = None,
        connect_timeout: Optional[int] = None,
        engine_factory: Optional[EngineFactory] = None,
    ):
        self.host_override = config.TENANT_DB_HOST if host_override is None else host_override
        self.port = port or config.TENANT_DB_PORT
        self.charset = charset or config.DB_CHARSET
        self.connect_timeout = connect_timeout or config.DB_CONNECT_TIMEOUT
        self.engine_factory = engine_factory or create_engine
        self._engines: Dict[str, Engine] = {}
        self._lock = threading.Lock()

    def url_for(self, profile: TenantProfile) -> URL:
        """Connection URL for the tenant, on the pinned host when one is set"""
        return URL.create(
            "mysql+pymysql",
            username=profile.db_user,
            password=profile.db_password,
            host=self.host_override or profile.db_host,
            port=self.port,
            database=profile.db_name,
            query={"charset": self.charset},
        )

    def _engine_for(self, profile: TenantProfile) -> Engine:
        url = self.url_for(profile)
        key = url.render_as_string(hide_password=False)
        with self._lock:
            engine = self._engines.get(key)
            if engine is None:
                engine = self.engine_factory(
                    url,
                    poolclass=NullPool,
                    connect_args={"connect_timeout": self.connect_timeout},
                )
                self._engines[key] = engine
        return engine

    @contextmanager
    def connect(self, profile: TenantProfile) -> Iterator[Session]:
        """
        Yield a session on a fresh connection to the tenant database.

        The session and its connection are closed on success, on business
        errors raised by the caller and on unexpected exceptions alike.

        Raises:
            ConnectionFailed: the database could not be reached
        """
        start = time.monotonic()
        try:
            connection = self._engine_for(profile).connect()
        except SQLAlchemyError as e:
            elapsed = _elapsed_ms(start)
            log.error(
                f"❌ Tenant DB connection failed for {profile.tenant_code} "
                f"after {elapsed}ms: {type(e).__name__}"
            )
            raise ConnectionFailed(
                "Could not connect to the tenant database",
                elapsed_ms=elapsed,
                cause=e,
            ) from e

        log.debug(f"Tenant DB connection for {profile.tenant_code} opened in {_elapsed_ms(start)}ms")
        session = Session(bind=connection, autoflush=False)
        try:
            yield session
        finally:
            session.close()
            connection.close()
