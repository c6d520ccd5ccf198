"""Shared fixtures: SQLite stand-ins for the registry and a tenant database."""
import os

os.environ.setdefault("LOG_TO_FILE", "false")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.exc import OperationalError  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from wappy.core.config_loader import ProviderConfigLoader  # noqa: E402
from wappy.db.tenant import TenantConnectionFactory  # noqa: E402
from wappy.models.base import RegistryBase, TenantBase  # noqa: E402
from wappy.models.client import Client, ClientSetting  # noqa: E402
from wappy.services.tenant_resolver import TenantResolver  # noqa: E402


def sqlite_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


def utcnow_naive():
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def hours_ago(hours):
    return utcnow_naive() - timedelta(hours=hours)


# ────────────────────────────────────────────
# Registry
# ────────────────────────────────────────────

@pytest.fixture
def registry_engine():
    engine = sqlite_engine()
    RegistryBase.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def registry_factory(registry_engine):
    return sessionmaker(bind=registry_engine, autoflush=False)


@pytest.fixture
def add_tenant(registry_factory):
    def _add(code, group=None, name=None, host="db.internal", db_name=None):
        db = registry_factory()
        try:
            db.add(Client(
                code=code,
                display_name=name or code,
                db_host=host,
                db_name=db_name or f"db_{code}",
                db_user=f"user_{code}",
                db_password=f"secret_{code}",
                group_label=group,
            ))
            db.commit()
        finally:
            db.close()
    return _add


@pytest.fixture
def add_settings(registry_factory):
    def _add(code, **settings):
        db = registry_factory()
        try:
            for key, value in settings.items():
                db.add(ClientSetting(tenant_code=code, key=key, value=value))
            db.commit()
        finally:
            db.close()
    return _add


@pytest.fixture
def kaleyra_settings():
    return {
        "wa_kaleyra_sid": "HXAP123",
        "wa_kaleyra_apikey": "Ae1-secret-key",
        "wa_kaleyra_numero_telefono": "390212345678",
    }


@pytest.fixture
def resolver(registry_factory):
    return TenantResolver(session_factory=registry_factory)


@pytest.fixture
def config_loader(registry_factory):
    return ProviderConfigLoader(session_factory=registry_factory)


# ────────────────────────────────────────────
# Tenant database
# ────────────────────────────────────────────

@pytest.fixture
def tenant_engine():
    engine = sqlite_engine()
    TenantBase.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def tenant_db(tenant_engine):
    """Plain session for seeding and inspecting the tenant database"""
    db = sessionmaker(bind=tenant_engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def pool_counter(tenant_engine):
    """Counts connection checkouts and checkins on the tenant engine"""
    counts = {"checkout": 0, "checkin": 0}

    def on_checkout(dbapi_connection, connection_record, connection_proxy):
        counts["checkout"] += 1

    def on_checkin(dbapi_connection, connection_record):
        counts["checkin"] += 1

    event.listen(tenant_engine, "checkout", on_checkout)
    event.listen(tenant_engine, "checkin", on_checkin)
    return counts


@pytest.fixture
def connection_factory(tenant_engine):
    """Connection factory whose engines all point at the SQLite tenant DB"""
    return TenantConnectionFactory(
        host_override="",
        engine_factory=lambda url, **kwargs: tenant_engine,
    )


# ────────────────────────────────────────────
# Provider HTTP
# ────────────────────────────────────────────

class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeHttp:
    """Stands in for the requests module; records every POST"""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(200, {"id": "msg-1"})
        self.error = error
        self.calls = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


class BrokenSession:
    """Registry session whose every query fails"""

    def __init__(self):
        self.closed = False

    def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("Can't connect to MySQL server"))

    def close(self):
        self.closed = True
