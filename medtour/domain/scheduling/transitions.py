"""Status state machines for review requests and appointments."""

from enum import Enum
from typing import Optional

from fastapi import HTTPException


class ReviewStatus(str, Enum):
    pending = "pending"
    reviewed = "reviewed"
    approved = "approved"
    rejected = "rejected"


class AppointmentStatus(str, Enum):
    scheduled = "scheduled"
    in_progress = "in-progress"
    completed = "completed"
    cancelled = "cancelled"
    no_show = "no-show"


REVIEW_TRANSITIONS: dict[ReviewStatus, set[ReviewStatus]] = {
    ReviewStatus.pending: {ReviewStatus.reviewed, ReviewStatus.approved, ReviewStatus.rejected},
    ReviewStatus.reviewed: {ReviewStatus.approved, ReviewStatus.rejected},
    ReviewStatus.approved: set(),
    ReviewStatus.rejected: set(),
}

# Requests that can still be approved
OPEN_REVIEW_STATUSES = (ReviewStatus.pending.value, ReviewStatus.reviewed.value)

APPOINTMENT_TRANSITIONS: dict[AppointmentStatus, set[AppointmentStatus]] = {
    AppointmentStatus.scheduled: {
        AppointmentStatus.in_progress,
        AppointmentStatus.completed,
        AppointmentStatus.cancelled,
        AppointmentStatus.no_show,
    },
    AppointmentStatus.in_progress: {AppointmentStatus.completed, AppointmentStatus.cancelled},
    AppointmentStatus.completed: set(),
    AppointmentStatus.cancelled: set(),
    AppointmentStatus.no_show: set(),
}

# Appointments that still hold a slot and may be joined
ACTIVE_APPOINTMENT_STATUSES = (
    AppointmentStatus.scheduled.value,
    AppointmentStatus.in_progress.value,
)


def can_transition_review(current: str, target: str) -> bool:
    return ReviewStatus(target) in REVIEW_TRANSITIONS[ReviewStatus(current)]


def can_transition_appointment(current: str, target: str) -> bool:
    return AppointmentStatus(target) in APPOINTMENT_TRANSITIONS[AppointmentStatus(current)]


def parse_status_filter(status: Optional[str], statuses: type[Enum]) -> Optional[str]:
    """Map a ?status= query value to a column value; "all" disables the filter"""
    if not status or status == "all":
        return None
    try:
        return statuses(status).value
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status filter: {status}")
