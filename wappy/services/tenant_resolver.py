# wappy/services/tenant_resolver.py
"""
Tenant Resolver

Maps a public tenant code to the private connection profile stored in
the registry, and finds the other tenants of the same group.
"""
import logging
import time
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from wappy.core.errors import (
    GroupLookupFailed, RegistryUnavailable, TenantNotFound
)
from wappy.db.registry import RegistrySessionFactory, get_registry_session_factory
from wappy.models.client import Client
from wappy.schemas.tenant import (
    GroupPeer, TenantContext, TenantProfile, normalize_tenant_code
)

log = logging.getLogger("wappy.tenant_resolver")


class TenantResolver:
    """
    Resolves tenants against the registry database.

    Each lookup opens its own registry session and closes it before
    returning, whatever the outcome.
    """

    def __init__(self, session_factory: Optional[RegistrySessionFactory] = None):
        self._session_factory = session_factory

    @property
    def session_factory(self) -> RegistrySessionFactory:
        if self._session_factory is None:
            self._session_factory = get_registry_session_factory()
        return self._session_factory

    def resolve(self, tenant_code: Optional[str]) -> TenantProfile:
        """
        Look up the connection profile of a tenant.

        Args:
            tenant_code: Public tenant code, e.g. "spotty42"

        Returns:
            The tenant's profile

        Raises:
            InvalidRequest: tenant_code is blank
            TenantNotFound: no registry row matches
            RegistryUnavailable: the registry could not be queried
        """
        code = normalize_tenant_code(tenant_code)
        start = time.monotonic()
        db = None
        try:
            db = self.session_factory()
            row = db.execute(
                select(Client).where(func.lower(Client.code) == code.lower())
            ).scalars().first()
        except SQLAlchemyError as e:
            elapsed = int((time.monotonic() - start) * 1000)
            log.error(
                f"❌ Registry lookup failed for tenant={code} after {elapsed}ms: "
                f"{type(e).__name__}"
            )
            raise RegistryUnavailable("Tenant registry is not reachable") from e
        finally:
            if db is not None:
                db.close()

        if row is None:
            log.warning(f"No registry entry for tenant={code}")
            raise TenantNotFound(code)

        log.debug(f"Resolved tenant={code} in {int((time.monotonic() - start) * 1000)}ms")
        return TenantProfile(
            tenant_code=row.code,
            db_host=row.db_host,
            db_name=row.db_name,
            db_user=row.db_user,
            db_password=row.db_password,
            group_label=row.group_label,
            display_name=row.display_name,
        )

    def group_peers(self, profile: TenantProfile) -> List[GroupPeer]:
        """
        Other tenants sharing the profile's group label.

        Labels are compared ignoring case and surrounding whitespace.
        The tenant itself is excluded; registry order is preserved.

        Raises:
            GroupLookupFailed: the registry could not be queried
        """
        label = (profile.group_label or "").strip()
        if not label:
            return []

        db = None
        try:
            db = self.session_factory()
            rows = db.execute(
                select(Client.code, Client.display_name).where(
                    func.lower(func.trim(Client.group_label)) == label.lower(),
                    func.lower(Client.code) != profile.tenant_code.lower(),
                )
            ).all()
        except SQLAlchemyError as e:
            log.error(f"❌ Group lookup failed for tenant={profile.tenant_code}: {type(e).__name__}")
            raise GroupLookupFailed("Could not load the tenant group") from e
        finally:
            if db is not None:
                db.close()

        return [GroupPeer(tenant_code=code, display_name=name) for code, name in rows]

    def resolve_with_peers(self, tenant_code: Optional[str]) -> TenantContext:
        """
        Resolve a tenant and its group peers.

        A failing peer lookup does not fail the resolution: the context is
        returned with no peers and ``group_lookup_failed`` set.
        """
        profile = self.resolve(tenant_code)
        try:
            peers = self.group_peers(profile)
        except GroupLookupFailed:
            log.warning(f"⚠️ Returning tenant={profile.tenant_code} without group peers")
            return TenantContext(profile=profile, peers=[], group_lookup_failed=True)
        return TenantContext(profile=profile, peers=peers)
