# wappy/api/v1/messages.py
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from wappy.api.deps import open_tenant_session, tenant_session
from wappy.core import config
from wappy.core.errors import SessionWindowClosed
from wappy.db.tenant import TenantConnectionFactory
from wappy.schemas.message import (
    ConversationDetail, MessageResponse, MessageSendResponse,
    SendMessageRequest, SessionWindowResponse
)
from wappy.services import (
    get_chat_service, get_connection_factory, get_provider_gateway, get_tenant_resolver
)
from wappy.services.chat_service import ChatService
from wappy.services.provider_gateway import KaleyraGateway
from wappy.services.tenant_resolver import TenantResolver

router = APIRouter()
log = logging.getLogger("wappy.api.messages")


@router.get("", response_model=ConversationDetail)
def get_conversation(
    mobile: str = Query(..., min_length=1, description="Contact phone number"),
    db: Session = Depends(tenant_session),
    service: ChatService = Depends(get_chat_service)
):
    """Transcript with a contact plus the current session window"""
    messages, window = service.session_window(db, mobile)
    return ConversationDetail(
        mobile=mobile,
        messages=[MessageResponse.from_record(m) for m in messages],
        session_window=SessionWindowResponse.from_state(window),
    )


@router.post("/send", response_model=MessageSendResponse)
def send_message(
    data: SendMessageRequest,
    resolver: TenantResolver = Depends(get_tenant_resolver),
    factory: TenantConnectionFactory = Depends(get_connection_factory),
    service: ChatService = Depends(get_chat_service),
    gateway: KaleyraGateway = Depends(get_provider_gateway)
):
    """
    Send a free-form message.

    Refused with 403 ``session_window_closed`` once the conversation has
    been idle for longer than the session window; use a template instead.
    """
    if config.ENFORCE_SESSION_WINDOW:
        with open_tenant_session(data.tenant_code, resolver, factory) as db:
            _, window = service.session_window(db, data.to)
        if not window.is_open:
            log.info(f"🔒 Free-form send to {data.to} refused: session window closed")
            raise SessionWindowClosed(
                "The 24-hour session window is closed; send a template instead",
                details=SessionWindowResponse.from_state(window).model_dump(mode="json"),
            )

    result = gateway.send_text(
        data.tenant_code, data.to, data.text,
        media_url=data.media_url, mime_type=data.mime_type,
    )
    return MessageSendResponse.from_result(result)
