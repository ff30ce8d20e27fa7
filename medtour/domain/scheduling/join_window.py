"""Join window for video consultations.

A participant may fetch the room of an appointment from 15 minutes before
``scheduled_date`` until ``duration`` minutes after it. Both bounds are
inclusive. All datetimes are naive UTC.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

JOIN_LEAD_TIME = timedelta(minutes=15)


class JoinWindowState(str, Enum):
    too_early = "too_early"
    open = "open"
    ended = "ended"


def utcnow() -> datetime:
    """Current time as naive UTC, matching what the database stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def window_closes_at(scheduled_date: datetime, duration: int) -> datetime:
    return scheduled_date + timedelta(minutes=duration)


def join_window_state(
    scheduled_date: datetime, duration: int, now: Optional[datetime] = None
) -> JoinWindowState:
    now = now or utcnow()
    if scheduled_date - now > JOIN_LEAD_TIME:
        return JoinWindowState.too_early
    if now > window_closes_at(scheduled_date, duration):
        return JoinWindowState.ended
    return JoinWindowState.open


def can_join(scheduled_date: datetime, duration: int, now: Optional[datetime] = None) -> bool:
    return join_window_state(scheduled_date, duration, now) is JoinWindowState.open
