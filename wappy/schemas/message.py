# wappy/schemas/message.py
"""
Pydantic schemas for the chat and message API, plus the records the
services pass around.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

DIRECTION_INBOUND = "inbound"
DIRECTION_OUTBOUND = "outbound"


def clean_phone(value: str) -> str:
    """Strip formatting from a phone number and ensure only digits remain"""
    clean = value.replace('+', '').replace(' ', '').replace('-', '')
    if not clean.isdigit():
        raise ValueError('Phone number must contain only digits')
    return clean


# ────────────────────────────────────────────
# Records (service layer)
# ────────────────────────────────────────────

@dataclass
class ChatMessage:
    """One message of a transcript, inbound or outbound"""
    id: Any
    direction: str
    sender: Optional[str]
    content: str
    timestamp: Any  # datetime once read from the DB; raw values are tolerated
    media_url: Optional[str] = None
    mime_type: Optional[str] = None
    status: Optional[str] = None
    is_system: bool = False


@dataclass
class ChatSummary:
    """One conversation of the chat list"""
    mobile: str
    name: str
    last_message: str
    last_message_time: Optional[datetime]
    last_direction: Optional[str] = None


# ────────────────────────────────────────────
# Request Schemas (Input)
# ────────────────────────────────────────────

class SendMessageRequest(BaseModel):
    """Schema for sending a free-form message"""
    tenant_code: str = Field(..., min_length=1, description="Tenant code, e.g. spotty42")
    to: str = Field(..., min_length=6, max_length=20, description="Recipient phone number")
    text: str = Field(..., min_length=1, max_length=4096, description="Message text")
    media_url: Optional[str] = Field(None, max_length=2000, description="Public URL of an attachment")
    mime_type: Optional[str] = Field(None, max_length=100, description="Attachment MIME type")

    @field_validator('to')
    @classmethod
    def validate_to(cls, v):
        """Clean and validate phone number"""
        return clean_phone(v)


# ────────────────────────────────────────────
# Response Schemas (Output)
# ────────────────────────────────────────────

class MessageResponse(BaseModel):
    id: Any
    direction: str
    sender: Optional[str] = None
    content: str = ""
    media_url: Optional[str] = None
    mime_type: Optional[str] = None
    time: datetime
    status: Optional[str] = None
    is_system: bool = False

    @classmethod
    def from_record(cls, message: ChatMessage) -> "MessageResponse":
        return cls(
            id=message.id,
            direction=message.direction,
            sender=message.sender,
            content=message.content,
            media_url=message.media_url,
            mime_type=message.mime_type,
            time=message.timestamp,
            status=message.status,
            is_system=message.is_system,
        )


class SessionWindowResponse(BaseModel):
    state: str
    policy: str
    can_send_free_form: bool
    last_message_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @classmethod
    def from_state(cls, window) -> "SessionWindowResponse":
        return cls(
            state=window.state.value,
            policy=window.policy.value,
            can_send_free_form=window.is_open,
            last_message_at=window.last_message_at,
            expires_at=window.expires_at,
        )


class ConversationDetail(BaseModel):
    """Transcript of one contact with the current session window"""
    mobile: str
    messages: List[MessageResponse]
    session_window: SessionWindowResponse


class ConversationPreview(BaseModel):
    mobile: str
    name: str
    last_message: str = ""
    last_message_time: Optional[datetime] = None
    last_direction: Optional[str] = None

    @classmethod
    def from_record(cls, chat: ChatSummary) -> "ConversationPreview":
        return cls(
            mobile=chat.mobile,
            name=chat.name,
            last_message=chat.last_message,
            last_message_time=chat.last_message_time,
            last_direction=chat.last_direction,
        )


class ChatListResponse(BaseModel):
    tenant_code: str
    chats: List[ConversationPreview]
    cached: bool = False


class MessageSendResponse(BaseModel):
    """Outcome of a provider send"""
    ok: bool = True
    message_id: Optional[str] = None
    to: str
    send_type: str
    audit_logged: bool
    provider_response: Any = None

    @classmethod
    def from_result(cls, result) -> "MessageSendResponse":
        return cls(
            message_id=result.message_id,
            to=result.to,
            send_type=result.send_type,
            audit_logged=result.audit_logged,
            provider_response=result.provider_response,
        )
