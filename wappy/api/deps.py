# wappy/api/deps.py
"""
API dependencies for tenant resolution and tenant database access.

A request names its tenant with ``tenant_code``; the code is resolved
against the registry before any tenant database is touched, so an unknown
tenant never reaches the connection factory.
"""
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from wappy.db.tenant import TenantConnectionFactory
from wappy.schemas.tenant import TenantProfile, normalize_tenant_code
from wappy.services import get_connection_factory, get_tenant_resolver
from wappy.services.tenant_resolver import TenantResolver


def require_tenant_code(
    tenant_code: Optional[str] = Query(None, description="Tenant code, e.g. spotty42")
) -> str:
    """Tenant code from the query string; InvalidRequest (400) when blank"""
    return normalize_tenant_code(tenant_code)


def get_tenant_profile(
    tenant_code: str = Depends(require_tenant_code),
    resolver: TenantResolver = Depends(get_tenant_resolver),
) -> TenantProfile:
    return resolver.resolve(tenant_code)


def tenant_session(
    profile: TenantProfile = Depends(get_tenant_profile),
    factory: TenantConnectionFactory = Depends(get_connection_factory),
) -> Iterator[Session]:
    """
    Dependency yielding a session on the tenant's database.

    The connection is released when the request finishes, whatever the
    outcome.
    """
    with factory.connect(profile) as db:
        yield db


@contextmanager
def open_tenant_session(
    tenant_code: str,
    resolver: TenantResolver,
    factory: TenantConnectionFactory,
) -> Iterator[Session]:
    """Same as ``tenant_session`` for tenant codes carried in a request body"""
    profile = resolver.resolve(tenant_code)
    with factory.connect(profile) as db:
        yield db
