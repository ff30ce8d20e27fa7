"""Review request service - Business logic for the doctor review workflow"""

import logging
import math
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import CurrentUser
from ...models import Appointment, ReviewRequest
from ...services.daily_service import DailyService
from ...utils.sanitization import sanitize_string, sanitize_text
from ..appointments.service import AppointmentService
from ..doctors.repository import DoctorRepository
from ..scheduling import ReviewStatus, can_transition_review, parse_status_filter, utcnow
from .repository import ReviewRequestRepository
from .schemas import (
    DoctorReviewRequestList,
    ReviewRequestCreate,
    ReviewRequestResponse,
    ReviewRequestStats,
    ReviewStatusUpdate,
)

logger = logging.getLogger(__name__)


def _clean_text(value: Optional[str], max_length: int) -> Optional[str]:
    try:
        return sanitize_text(value, max_length=max_length)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


class ReviewRequestService:
    """Service layer for review request business logic"""

    def __init__(self, db: Session, daily: DailyService):
        self.db = db
        self.repo = ReviewRequestRepository()
        self.doctors = DoctorRepository()
        self.appointments = AppointmentService(db, daily)

    def create_request(self, data: ReviewRequestCreate, user: CurrentUser) -> ReviewRequest:
        """Patient submits a case to a doctor with a complete profile"""
        if data.doctorId == user.id:
            raise HTTPException(status_code=400, detail="You cannot send a review request to yourself")

        if not self.doctors.get_complete_profile(self.db, data.doctorId):
            raise HTTPException(status_code=404, detail="Doctor not found")

        condition = _clean_text(data.condition, 500)
        if not condition:
            raise HTTPException(status_code=400, detail="Condition is required")

        review_request = self.repo.create(
            self.db,
            patient_id=user.id,
            doctor_id=data.doctorId,
            patient_name=sanitize_string(data.patientName),
            patient_email=data.patientEmail,
            condition=condition,
            message=_clean_text(data.message, 500),
            status=ReviewStatus.pending.value,
        )
        logger.info(f"✅ Review request {review_request.id} sent by {user.id} to {data.doctorId}")
        return review_request

    def get_request(self, request_id: int, user: CurrentUser) -> ReviewRequest:
        review_request = self.repo.get_by_id(self.db, request_id)
        if not review_request:
            raise HTTPException(status_code=404, detail="Review request not found")
        if user.id not in (review_request.doctor_id, review_request.patient_id):
            logger.warning(f"⚠️ User {user.id} denied access to review request {request_id}")
            raise HTTPException(status_code=403, detail="Access denied")
        return review_request

    def list_for_doctor(
        self, doctor_id: str, user: CurrentUser, status: Optional[str], page: int, limit: int
    ) -> DoctorReviewRequestList:
        if doctor_id != user.id:
            raise HTTPException(status_code=403, detail="Access denied")

        requests, total = self.repo.list_for_doctor(
            self.db, doctor_id, parse_status_filter(status, ReviewStatus), page, limit
        )
        counts = self.repo.count_by_status(self.db, doctor_id)
        return DoctorReviewRequestList(
            requests=[ReviewRequestResponse.from_model(r) for r in requests],
            totalPages=math.ceil(total / limit),
            currentPage=page,
            total=total,
            pendingCount=counts.get(ReviewStatus.pending.value, 0),
        )

    def list_for_patient(
        self, patient_id: str, user: CurrentUser, status: Optional[str]
    ) -> list[ReviewRequest]:
        if patient_id != user.id:
            raise HTTPException(status_code=403, detail="Access denied")
        return self.repo.list_for_patient(
            self.db, patient_id, parse_status_filter(status, ReviewStatus)
        )

    def stats(self, doctor_id: str, user: CurrentUser) -> ReviewRequestStats:
        if doctor_id != user.id:
            raise HTTPException(status_code=403, detail="Access denied")

        counts = self.repo.count_by_status(self.db, doctor_id)
        stats = ReviewRequestStats(**{s.value: counts.get(s.value, 0) for s in ReviewStatus})
        stats.total = sum(counts.values())
        return stats

    async def update_status(
        self, request_id: int, user: CurrentUser, data: ReviewStatusUpdate
    ) -> tuple[ReviewRequest, Optional[Appointment]]:
        """
        Move a request to reviewed, approved or rejected.

        Approval books the appointment and returns it alongside the request;
        every other edge only touches the request.
        """
        review_request = self.repo.get_by_id(self.db, request_id)
        if not review_request:
            raise HTTPException(status_code=404, detail="Review request not found")
        if review_request.doctor_id != user.id:
            logger.warning(f"⚠️ User {user.id} tried to update review request {request_id}")
            raise HTTPException(status_code=403, detail="Access denied")

        notes = _clean_text(data.doctorNotes, 1000)

        if data.status is ReviewStatus.approved:
            if data.scheduledDate is None:
                raise HTTPException(
                    status_code=400, detail="scheduledDate is required to approve a review request"
                )
            appointment = await self.appointments.approve_review_request(
                request_id, user, data.scheduledDate, data.duration, doctor_notes=notes
            )
            review_request = self.repo.get_by_id(self.db, request_id)
            return review_request, appointment

        target = data.status.value
        if target == review_request.status:
            review_request = self.repo.update_status(self.db, review_request, target, doctor_notes=notes)
            return review_request, None

        if not can_transition_review(review_request.status, target):
            raise HTTPException(
                status_code=400,
                detail=f"Cannot change review request status from {review_request.status} to {target}",
            )

        previous = review_request.status
        review_request = self.repo.update_status(
            self.db, review_request, target, reviewed_on=utcnow(), doctor_notes=notes
        )
        logger.info(f"✅ Review request {request_id} status {previous} -> {target}")
        return review_request, None
