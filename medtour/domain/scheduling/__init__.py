"""
Scheduling Domain

Time and status rules shared by review requests and appointments:

- join_window.py   when a participant may fetch the video room of a call
- transitions.py   allowed status edges and ?status= filters for both

Both modules are pure (no database access) so the routes of every other
domain apply exactly the same rules.
"""

from .join_window import (
    JOIN_LEAD_TIME,
    JoinWindowState,
    can_join,
    join_window_state,
    utcnow,
    window_closes_at,
)
from .transitions import (
    ACTIVE_APPOINTMENT_STATUSES,
    AppointmentStatus,
    ReviewStatus,
    can_transition_appointment,
    can_transition_review,
    parse_status_filter,
)

__all__ = [
    "JOIN_LEAD_TIME",
    "JoinWindowState",
    "can_join",
    "join_window_state",
    "utcnow",
    "window_closes_at",
    "ACTIVE_APPOINTMENT_STATUSES",
    "AppointmentStatus",
    "ReviewStatus",
    "can_transition_appointment",
    "can_transition_review",
    "parse_status_filter",
]
