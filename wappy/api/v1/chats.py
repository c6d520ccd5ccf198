# wappy/api/v1/chats.py
from fastapi import APIRouter, Depends, Query

from wappy.api.deps import open_tenant_session, require_tenant_code
from wappy.db.tenant import TenantConnectionFactory
from wappy.schemas.message import ChatListResponse, ConversationPreview
from wappy.services import get_chat_service, get_connection_factory, get_tenant_resolver
from wappy.services.chat_service import ChatService
from wappy.services.tenant_resolver import TenantResolver

router = APIRouter()


@router.get("", response_model=ChatListResponse)
def list_chats(
    tenant_code: str = Depends(require_tenant_code),
    refresh: bool = Query(False, description="Bypass the chat list cache"),
    resolver: TenantResolver = Depends(get_tenant_resolver),
    factory: TenantConnectionFactory = Depends(get_connection_factory),
    service: ChatService = Depends(get_chat_service)
):
    """
    Conversations of a tenant, newest first.

    Served from a short-lived cache when possible; the tenant database is
    only opened on a miss.
    """
    chats = None if refresh else service.cached_chats(tenant_code)
    cached = chats is not None
    if not cached:
        with open_tenant_session(tenant_code, resolver, factory) as db:
            chats, _ = service.list_chats(db, tenant_code, use_cache=False)

    return ChatListResponse(
        tenant_code=tenant_code,
        chats=[ConversationPreview.from_record(c) for c in chats],
        cached=cached,
    )
