# wappy/api/v1/tenants.py
from fastapi import APIRouter, Depends

from wappy.api.deps import require_tenant_code
from wappy.schemas.tenant import TenantSummaryResponse
from wappy.services import get_tenant_resolver
from wappy.services.tenant_resolver import TenantResolver

router = APIRouter()


@router.get("/current", response_model=TenantSummaryResponse)
def current_tenant(
    tenant_code: str = Depends(require_tenant_code),
    resolver: TenantResolver = Depends(get_tenant_resolver)
):
    """Profile of the selected tenant and the other tenants of its group"""
    context = resolver.resolve_with_peers(tenant_code)
    return TenantSummaryResponse.from_context(context)
