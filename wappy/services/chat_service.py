# wappy/services/chat_service.py
"""
Chat service - conversations and transcripts of one tenant.

Inbound messages (written by the webhook pipeline) and the outbound send
log are separate tables; they are merged here, at read time, into one
transcript per contact.
"""
import json
import logging
import re
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from wappy.core import config
from wappy.models.message import STATUS_FAILED, InboundMessage, OutboundLog
from wappy.schemas.message import (
    DIRECTION_INBOUND, DIRECTION_OUTBOUND, ChatMessage, ChatSummary
)
from wappy.services.chat_cache import TTLCache
from wappy.services.session_window import (
    SessionWindowState, db_timezone, evaluate_session_window, parse_timestamp
)

log = logging.getLogger("wappy.chat_service")

OUTBOUND_SENDER = "Me"
SYSTEM_SENDER = "System"
MEDIA_KEYS = ("image", "video", "document", "audio", "sticker")

_NOT_FAILED = or_(OutboundLog.status.is_(None), OutboundLog.status != STATUS_FAILED)

_DATE_LINE = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")


def extract_message_text(raw: Optional[str]) -> str:
    """
    Text of an inbound message stored as the provider's JSON array.

    Uses ``text.body``, then the caption of a media message. Anything that
    cannot be read yields an empty string.
    """
    if not raw:
        return ""
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        log.warning("Inbound message payload is not valid JSON")
        return ""

    if isinstance(payload, list):
        payload = payload[0] if payload else {}
    if not isinstance(payload, dict):
        return ""

    text = payload.get("text")
    if isinstance(text, dict) and text.get("body"):
        return str(text["body"])
    for key in MEDIA_KEYS:
        media = payload.get(key)
        if isinstance(media, dict) and media.get("caption"):
            return str(media["caption"])
    return ""


def remove_date_lines(content: Optional[str]) -> str:
    """Drop lines that only hold a dd/mm/yyyy date"""
    if not content:
        return ""
    lines = content.split("\n")
    return "\n".join(line for line in lines if not _DATE_LINE.match(line.strip()))


class ChatService:
    """Read side of the console: chat list, transcripts, session window"""

    def __init__(self, cache: Optional[TTLCache] = None):
        self.cache = cache if cache is not None else TTLCache(config.CHAT_LIST_CACHE_TTL)

    # ────────────────────────────────────────────
    # Transcripts
    # ────────────────────────────────────────────

    def list_messages(self, db: Session, mobile: str) -> List[ChatMessage]:
        """
        Full transcript with a contact, oldest first.

        Rows whose timestamp cannot be read are left out.
        """
        tz = db_timezone()
        inbound = db.execute(
            select(InboundMessage).where(InboundMessage.mobile == mobile)
        ).scalars().all()
        outbound = db.execute(
            select(OutboundLog).where(OutboundLog.phone == mobile)
        ).scalars().all()

        messages: List[ChatMessage] = []
        for row in inbound:
            timestamp = parse_timestamp(row.created_at, tz)
            if timestamp is None:
                log.error(f"Invalid date for inbound message {row.id}: {row.created_at!r}")
                continue
            messages.append(ChatMessage(
                id=row.id,
                direction=DIRECTION_INBOUND,
                sender=row.sender,
                content=remove_date_lines(extract_message_text(row.message)),
                timestamp=timestamp,
                media_url=row.media_url or None,
                mime_type=row.mime_type or None,
                is_system=row.sender == SYSTEM_SENDER,
            ))

        for row in outbound:
            timestamp = parse_timestamp(row.sent_at, tz)
            if timestamp is None:
                log.error(f"Invalid date for outbound message {row.id}: {row.sent_at!r}")
                continue
            messages.append(ChatMessage(
                id=row.id,
                direction=DIRECTION_OUTBOUND,
                sender=OUTBOUND_SENDER,
                content=remove_date_lines(row.text),
                timestamp=timestamp,
                status=row.status,
            ))

        messages.sort(key=lambda m: m.timestamp)
        return messages

    def session_window(
        self,
        db: Session,
        mobile: str,
        now: Optional[datetime] = None,
    ) -> Tuple[List[ChatMessage], SessionWindowState]:
        """
        Transcript of a contact together with its evaluated window.

        Sends the provider rejected stay in the transcript but are not
        conversation activity, so they never reopen the window.
        """
        messages = self.list_messages(db, mobile)
        activity = [m for m in messages if m.status != STATUS_FAILED]
        return messages, evaluate_session_window(activity, now=now)

    # ────────────────────────────────────────────
    # Chat List
    # ────────────────────────────────────────────

    def _latest_inbound(self, db: Session) -> List[InboundMessage]:
        latest = select(
            InboundMessage.mobile,
            func.max(InboundMessage.created_at).label("last_time")
        ).group_by(InboundMessage.mobile).subquery()

        return db.execute(
            select(InboundMessage).join(
                latest,
                and_(
                    InboundMessage.mobile == latest.c.mobile,
                    InboundMessage.created_at == latest.c.last_time,
                ),
            ).order_by(InboundMessage.id)
        ).scalars().all()

    def _latest_outbound(self, db: Session) -> List[OutboundLog]:
        latest = select(
            OutboundLog.phone,
            func.max(OutboundLog.sent_at).label("last_time")
        ).where(_NOT_FAILED).group_by(OutboundLog.phone).subquery()

        return db.execute(
            select(OutboundLog).join(
                latest,
                and_(
                    OutboundLog.phone == latest.c.phone,
                    OutboundLog.sent_at == latest.c.last_time,
                ),
            ).where(_NOT_FAILED).order_by(OutboundLog.id)
        ).scalars().all()

    def _build_chat_list(self, db: Session) -> List[ChatSummary]:
        tz = db_timezone()
        chats: Dict[str, ChatSummary] = {}

        def offer(mobile, name, content, raw_time, direction):
            timestamp = parse_timestamp(raw_time, tz)
            current = chats.get(mobile)
            if current is None:
                chats[mobile] = ChatSummary(
                    mobile=mobile,
                    name=name or mobile,
                    last_message=content,
                    last_message_time=timestamp,
                    last_direction=direction,
                )
                return
            if name and current.name == mobile:
                current.name = name
            if timestamp is not None and (
                current.last_message_time is None or timestamp >= current.last_message_time
            ):
                current.last_message = content
                current.last_message_time = timestamp
                current.last_direction = direction

        for row in self._latest_inbound(db):
            offer(row.mobile, row.name, extract_message_text(row.message), row.created_at, DIRECTION_INBOUND)
        for row in self._latest_outbound(db):
            offer(row.phone, None, row.text or "", row.sent_at, DIRECTION_OUTBOUND)

        return sorted(
            chats.values(),
            key=lambda c: (c.last_message_time is not None, c.last_message_time or datetime.min),
            reverse=True,
        )

    def list_chats(self, db: Session, tenant_code: str, use_cache: bool = True) -> Tuple[List[ChatSummary], bool]:
        """
        One entry per contact, newest conversation first.

        Returns:
            Tuple of (chats, served_from_cache)
        """
        key = tenant_code.lower()
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return cached, True

        chats = self._build_chat_list(db)
        self.cache.set(key, chats)
        log.debug(f"Built chat list for {tenant_code}: {len(chats)} conversations")
        return chats, False

    def cached_chats(self, tenant_code: str) -> Optional[List[ChatSummary]]:
        """Cached chat list of a tenant, None on a miss"""
        return self.cache.get(tenant_code.lower())

    def invalidate(self, tenant_code: str) -> None:
        self.cache.invalidate(tenant_code.lower())
