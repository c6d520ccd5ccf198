# wappy/services/session_window.py
"""
Session Window Evaluator

WhatsApp only accepts free-form messages within 24 hours of the
conversation's last activity; outside of it only approved templates can
be sent. Which messages count as activity is a policy:

- ``any``: the last message in either direction (historical behaviour
  of the console)
- ``inbound``: only messages from the contact, as the provider does

Everything here is pure: no database, no clock unless ``now`` is omitted.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any, Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from wappy.core import config
from wappy.schemas.message import DIRECTION_INBOUND, ChatMessage

log = logging.getLogger("wappy.session_window")


class WindowState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class WindowPolicy(str, Enum):
    ANY = "any"
    INBOUND = "inbound"


@dataclass(frozen=True)
class SessionWindowState:
    state: WindowState
    policy: WindowPolicy
    last_message_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.state is WindowState.OPEN


def db_timezone() -> tzinfo:
    """Time zone of naive DATETIME values stored in tenant databases"""
    name = config.DB_TIMEZONE
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        log.warning(f"Unknown DB_TIMEZONE {name!r}, assuming UTC")
        return timezone.utc


def parse_timestamp(value: Any, default_tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Turn a stored timestamp into an aware datetime.

    Accepts datetimes, ISO-8601 strings and epoch seconds. Naive values are
    placed in ``default_tz`` (UTC when omitted). Returns None for anything
    that cannot be read, including MySQL zero dates.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz or timezone.utc)
    return parsed


def evaluate_session_window(
    history: Iterable[Any],
    now: Optional[datetime] = None,
    window_hours: Optional[float] = None,
    policy: Optional[str] = None,
) -> SessionWindowState:
    """
    Decide whether free-form messages may be sent right now.

    Args:
        history: ChatMessage records, or bare timestamps (treated as inbound)
        now: Reference time, defaults to the current UTC time
        window_hours: Window length, defaults to SESSION_WINDOW_HOURS
        policy: "any" or "inbound", defaults to SESSION_WINDOW_POLICY

    Returns:
        OPEN when nothing usable is in the history or the latest counted
        message is at most ``window_hours`` old, CLOSED otherwise.
    """
    window_policy = WindowPolicy(policy or config.SESSION_WINDOW_POLICY)
    window = timedelta(hours=config.SESSION_WINDOW_HOURS if window_hours is None else window_hours)
    reference = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)
    if reference is None:
        raise ValueError(f"Invalid reference time: {now!r}")

    latest: Optional[datetime] = None
    for item in history:
        if isinstance(item, ChatMessage):
            if window_policy is WindowPolicy.INBOUND and item.direction != DIRECTION_INBOUND:
                continue
            raw, label = item.timestamp, f"message {item.id}"
        else:
            raw, label = item, "timestamp"

        timestamp = parse_timestamp(raw)
        if timestamp is None:
            log.warning(f"Ignoring {label} with invalid timestamp {raw!r}")
            continue
        if latest is None or timestamp > latest:
            latest = timestamp

    if latest is None:
        return SessionWindowState(state=WindowState.OPEN, policy=window_policy)

    expires_at = latest + window
    state = WindowState.CLOSED if reference - latest > window else WindowState.OPEN
    return SessionWindowState(
        state=state,
        policy=window_policy,
        last_message_at=latest,
        expires_at=expires_at,
    )
