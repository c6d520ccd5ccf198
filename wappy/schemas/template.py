# wappy/schemas/template.py
"""
Pydantic schemas for the template catalogue and template sends.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from wappy.schemas.message import clean_phone


# ────────────────────────────────────────────
# Records (service layer)
# ────────────────────────────────────────────

@dataclass
class TemplateEntry:
    """An approved template in one language"""
    uuid: str
    template_name: str
    name: Optional[str]
    language: Optional[str]
    body: Optional[str]
    subject: Optional[str] = None
    channel: Optional[str] = None
    sender_name: Optional[str] = None
    image: Optional[str] = None
    is_media_template: bool = False
    media_url: Optional[str] = None
    mime_type: Optional[str] = None


# ────────────────────────────────────────────
# Template Send Schemas
# ────────────────────────────────────────────

class TemplateSendRequest(BaseModel):
    """Send an approved text template"""
    tenant_code: str = Field(..., min_length=1, description="Tenant code, e.g. spotty42")
    to: str = Field(..., min_length=6, max_length=20, description="Recipient phone number")
    template_name: str = Field(..., min_length=1, max_length=255)
    lang_code: Optional[str] = Field(None, max_length=10, description="Template language, defaults to 'it'")
    params: Optional[str] = Field(None, description="Template parameters as expected by the provider")

    @field_validator('to')
    @classmethod
    def validate_to(cls, v):
        return clean_phone(v)

    model_config = {
        "json_schema_extra": {
            "example": {
                "tenant_code": "spotty42",
                "to": "393331234567",
                "template_name": "benvenuto_ospite",
                "lang_code": "it",
                "params": "\"Mario\",\"Camera 12\"",
            }
        }
    }


class MediaTemplateSendRequest(BaseModel):
    """
    Send an approved media template.

    The attachment is a public ``media_url``, or a ``media_filename`` in the
    tenant's media folder. With neither, the image stored with the template
    is used.
    """
    tenant_code: str = Field(..., min_length=1)
    to: str = Field(..., min_length=6, max_length=20)
    template_name: str = Field(..., min_length=1, max_length=255)
    lang_code: Optional[str] = Field(None, max_length=10)
    media_url: Optional[str] = Field(None, max_length=2000)
    media_filename: Optional[str] = Field(None, max_length=512)
    caption: Optional[str] = Field(None, max_length=1024)

    @field_validator('to')
    @classmethod
    def validate_to(cls, v):
        return clean_phone(v)


# ────────────────────────────────────────────
# Response Schemas
# ────────────────────────────────────────────

class TemplateResponse(BaseModel):
    uuid: str
    template_name: str
    name: Optional[str] = None
    language: Optional[str] = None
    body: Optional[str] = None
    subject: Optional[str] = None
    is_media_template: bool = False
    media_url: Optional[str] = None
    mime_type: Optional[str] = None

    @classmethod
    def from_record(cls, entry: TemplateEntry) -> "TemplateResponse":
        return cls(
            uuid=entry.uuid,
            template_name=entry.template_name,
            name=entry.name,
            language=entry.language,
            body=entry.body,
            subject=entry.subject,
            is_media_template=entry.is_media_template,
            media_url=entry.media_url,
            mime_type=entry.mime_type,
        )


class TemplateListResponse(BaseModel):
    """Approved templates grouped by language code"""
    tenant_code: str
    total: int
    languages: Dict[str, List[TemplateResponse]]
