# wappy/schemas/tenant.py
"""
Tenant records produced by the registry lookup, and their API views.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, Field

from wappy.core.errors import InvalidRequest


def normalize_tenant_code(tenant_code: Optional[str]) -> str:
    """Strip the code and reject blanks before any I/O happens"""
    code = (tenant_code or "").strip()
    if not code:
        raise InvalidRequest("tenant_code is required")
    return code


# ────────────────────────────────────────────
# Internal records
# ────────────────────────────────────────────

@dataclass(frozen=True)
class TenantProfile:
    """Private connection profile of one tenant. Never serialised to clients."""
    tenant_code: str
    db_host: Optional[str]
    db_name: str
    db_user: str
    db_password: str = field(repr=False)
    group_label: Optional[str] = None
    display_name: Optional[str] = None


@dataclass(frozen=True)
class GroupPeer:
    """Another tenant sharing the same group label"""
    tenant_code: str
    display_name: Optional[str]


@dataclass
class TenantContext:
    """Resolved tenant plus its group peers"""
    profile: TenantProfile
    peers: List[GroupPeer] = field(default_factory=list)
    group_lookup_failed: bool = False


# ────────────────────────────────────────────
# Response Schemas
# ────────────────────────────────────────────

class GroupPeerResponse(BaseModel):
    tenant_code: str
    display_name: Optional[str] = None


class TenantSummaryResponse(BaseModel):
    """Public view of the current tenant"""
    tenant_code: str
    display_name: Optional[str] = None
    group_label: Optional[str] = None
    peers: List[GroupPeerResponse] = Field(default_factory=list)
    group_lookup_failed: bool = False

    @classmethod
    def from_context(cls, context: TenantContext) -> "TenantSummaryResponse":
        return cls(
            tenant_code=context.profile.tenant_code,
            display_name=context.profile.display_name,
            group_label=context.profile.group_label,
            peers=[
                GroupPeerResponse(tenant_code=p.tenant_code, display_name=p.display_name)
                for p in context.peers
            ],
            group_lookup_failed=context.group_lookup_failed,
        )
