# wappy/services/template_service.py
"""
Template Service - approved template catalogue of a tenant.

Templates are created and approved on the provider side; the tenant
database only mirrors them, so this service is read-only.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from wappy.models.template import APPROVED_STATUS, MarketingMessage, MarketingMessageText
from wappy.schemas.template import TemplateEntry
from wappy.services.media import build_media_url, guess_mime_type

log = logging.getLogger("wappy.template_service")

UNKNOWN_LANGUAGE = "unknown"


class TemplateService:
    """Service for template lookups"""

    def list_templates(self, db: Session, tenant_code: str) -> Dict[str, List[TemplateEntry]]:
        """
        Approved templates grouped by language, ordered by template name.

        A template without texts is still listed, under ``unknown``.
        """
        rows = db.execute(
            select(MarketingMessage, MarketingMessageText)
            .outerjoin(MarketingMessageText, MarketingMessage.uuid == MarketingMessageText.message_uuid)
            .where(MarketingMessage.status == APPROVED_STATUS)
            .order_by(MarketingMessage.template_name, MarketingMessageText.language)
        ).all()

        grouped: Dict[str, List[TemplateEntry]] = {}
        for message, text in rows:
            entry = self._to_entry(tenant_code, message, text)
            grouped.setdefault(entry.language or UNKNOWN_LANGUAGE, []).append(entry)

        log.debug(f"Loaded {len(rows)} approved template texts for {tenant_code}")
        return grouped

    def get_template(
        self,
        db: Session,
        tenant_code: str,
        template_name: str,
        language: Optional[str] = None,
    ) -> Optional[TemplateEntry]:
        """Approved template by name, in ``language`` when given"""
        query = (
            select(MarketingMessage, MarketingMessageText)
            .outerjoin(MarketingMessageText, MarketingMessage.uuid == MarketingMessageText.message_uuid)
            .where(
                MarketingMessage.status == APPROVED_STATUS,
                MarketingMessage.template_name == template_name,
            )
        )
        if language:
            query = query.where(MarketingMessageText.language == language)

        row = db.execute(query.limit(1)).first()
        if row is None:
            return None
        return self._to_entry(tenant_code, row[0], row[1])

    @staticmethod
    def _to_entry(
        tenant_code: str,
        message: MarketingMessage,
        text: Optional[MarketingMessageText],
    ) -> TemplateEntry:
        is_media = bool(message.image)
        return TemplateEntry(
            uuid=message.uuid,
            template_name=message.template_name,
            name=message.name,
            language=text.language if text is not None else None,
            body=text.body if text is not None else None,
            subject=text.subject if text is not None else None,
            channel=message.channel,
            sender_name=message.sender_name,
            image=message.image,
            is_media_template=is_media,
            media_url=build_media_url(tenant_code, message.image) if is_media else None,
            mime_type=guess_mime_type(message.image) if is_media else None,
        )
