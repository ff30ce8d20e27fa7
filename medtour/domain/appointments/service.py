"""Appointment service - Business logic for appointments and video calls"""

import logging
import math
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...auth import CurrentUser
from ...models import Appointment, generate_public_id
from ...services.daily_service import DailyService, DailyServiceError
from ...utils.sanitization import sanitize_text
from ..doctors.repository import DoctorRepository
from ..review_requests.repository import ReviewRequestRepository
from ..scheduling import (
    ACTIVE_APPOINTMENT_STATUSES,
    AppointmentStatus,
    JoinWindowState,
    ReviewStatus,
    can_transition_appointment,
    join_window_state,
    parse_status_filter,
    utcnow,
)
from .repository import MAX_DURATION_MINUTES, AppointmentRepository
from .schemas import (
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatsResponse,
    AppointmentStatusUpdate,
    DoctorPatientsResponse,
    DoctorPatientSummary,
    JoinCallResponse,
    UpcomingAppointmentsResponse,
    UpcomingCallResponse,
)

logger = logging.getLogger(__name__)

UPCOMING_DAYS = 7
UPCOMING_LIMIT = 10

TOO_EARLY_MESSAGE = "Call room is not yet available. Please join 15 minutes before scheduled time."
ENDED_MESSAGE = "This appointment has ended."


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session, daily: DailyService):
        self.db = db
        self.daily = daily
        self.repo = AppointmentRepository()
        self.requests = ReviewRequestRepository()
        self.doctors = DoctorRepository()

    def _get_for_participant(self, appointment_id: int, user: CurrentUser) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        if user.id not in (appointment.doctor_id, appointment.patient_id):
            logger.warning(f"⚠️ User {user.id} denied access to appointment {appointment_id}")
            raise HTTPException(status_code=403, detail="Access denied")
        return appointment

    @staticmethod
    def _require_self(owner_id: str, user: CurrentUser) -> None:
        if owner_id != user.id:
            logger.warning(f"⚠️ User {user.id} denied access to records of {owner_id}")
            raise HTTPException(status_code=403, detail="Access denied")

    async def _discard_room(self, room_name: str) -> None:
        try:
            await self.daily.delete_room(room_name)
        except DailyServiceError as e:
            logger.error(f"❌ Could not delete orphaned Daily.co room {room_name}: {e}")

    async def approve_review_request(
        self,
        request_id: int,
        user: CurrentUser,
        scheduled_date: datetime,
        duration: int = 30,
        doctor_notes: Optional[str] = None,
    ) -> Appointment:
        """
        Approve a review request and book its video appointment.

        The video room is created first; the appointment insert and the
        request status flip then happen in one transaction. If that
        transaction cannot be committed the room is deleted again.

        Raises:
            HTTPException: 404 unknown request or doctor profile, 403 not the
                request's doctor, 409 request already closed or slot taken,
                500 video provider or database failure
        """
        review_request = self.requests.get_by_id(self.db, request_id)
        if not review_request:
            raise HTTPException(status_code=404, detail="Review request not found")
        if review_request.doctor_id != user.id:
            logger.warning(f"⚠️ User {user.id} tried to approve review request {request_id}")
            raise HTTPException(status_code=403, detail="Access denied")

        if not 1 <= duration <= MAX_DURATION_MINUTES:
            raise HTTPException(
                status_code=400,
                detail=f"Duration must be between 1 and {MAX_DURATION_MINUTES} minutes",
            )

        if review_request.status == ReviewStatus.approved.value:
            raise HTTPException(status_code=409, detail="Review request already approved")
        if review_request.status == ReviewStatus.rejected.value:
            raise HTTPException(status_code=409, detail="Review request cannot be approved")

        doctor = self.doctors.get_by_doctor_id(self.db, user.id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor profile not found")

        end = scheduled_date + timedelta(minutes=duration)
        clash = self.repo.find_overlapping(self.db, user.id, scheduled_date, end)
        if clash:
            logger.warning(
                f"⚠️ Doctor {user.id} double-booking rejected (clashes with appointment {clash.id})"
            )
            raise HTTPException(
                status_code=409, detail="Doctor already has an appointment at this time"
            )

        public_id = generate_public_id()
        try:
            room = await self.daily.create_room(public_id, scheduled_date, duration)
        except DailyServiceError as e:
            logger.error(f"❌ Video room creation failed for review request {request_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create video call room")

        appointment = Appointment(
            public_id=public_id,
            review_request_id=review_request.id,
            doctor_id=user.id,
            patient_id=review_request.patient_id,
            patient_name=review_request.patient_name,
            doctor_name=doctor.full_name,
            scheduled_date=scheduled_date,
            duration=duration,
            status=AppointmentStatus.scheduled.value,
            daily_room_url=room.url,
            daily_room_name=room.name,
            consultation_fee=doctor.consultation_fee,
        )

        try:
            created = self.repo.create_for_request(
                self.db, appointment, reviewed_on=utcnow(), doctor_notes=doctor_notes
            )
        except IntegrityError:
            await self._discard_room(room.name)
            raise HTTPException(status_code=409, detail="Review request already approved")
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to save appointment for review request {request_id}: {e}")
            await self._discard_room(room.name)
            raise HTTPException(status_code=500, detail="Failed to create appointment")

        if not created:
            await self._discard_room(room.name)
            raise HTTPException(status_code=409, detail="Review request already approved")

        logger.info(
            f"✅ Review request {request_id} approved, appointment {appointment.id} "
            f"scheduled for {scheduled_date.isoformat()}"
        )
        return appointment

    def get_appointment(self, appointment_id: int, user: CurrentUser) -> Appointment:
        return self._get_for_participant(appointment_id, user)

    def list_doctor_appointments(
        self,
        doctor_id: str,
        user: CurrentUser,
        status: Optional[str],
        day: Optional[date],
        page: int,
        limit: int,
    ) -> AppointmentListResponse:
        self._require_self(doctor_id, user)
        appointments, total = self.repo.list_for_doctor(
            self.db, doctor_id, parse_status_filter(status, AppointmentStatus), day, page, limit
        )
        return AppointmentListResponse(
            appointments=[AppointmentResponse.from_model(a) for a in appointments],
            totalPages=math.ceil(total / limit),
            currentPage=page,
            total=total,
        )

    def list_patient_appointments(
        self, patient_id: str, user: CurrentUser, status: Optional[str]
    ) -> list[Appointment]:
        self._require_self(patient_id, user)
        return self.repo.list_for_patient(
            self.db, patient_id, parse_status_filter(status, AppointmentStatus)
        )

    def _joinable_soon(
        self,
        now: datetime,
        latest: Optional[datetime] = None,
        doctor_id: Optional[str] = None,
        patient_id: Optional[str] = None,
    ) -> list[Appointment]:
        # Anything that started more than the longest duration ago has ended
        candidates = self.repo.list_active_between(
            self.db,
            earliest=now - timedelta(minutes=MAX_DURATION_MINUTES),
            latest=latest,
            doctor_id=doctor_id,
            patient_id=patient_id,
        )
        return [
            a
            for a in candidates
            if join_window_state(a.scheduled_date, a.duration, now) is not JoinWindowState.ended
        ]

    def upcoming_for_doctor(self, doctor_id: str, user: CurrentUser) -> UpcomingAppointmentsResponse:
        self._require_self(doctor_id, user)
        now = utcnow()
        appointments = self._joinable_soon(
            now, latest=now + timedelta(days=UPCOMING_DAYS), doctor_id=doctor_id
        )[:UPCOMING_LIMIT]
        return UpcomingAppointmentsResponse(
            appointments=[UpcomingCallResponse.from_model(a, now) for a in appointments],
            total=len(appointments),
        )

    def upcoming_for_patient(self, patient_id: str, user: CurrentUser) -> list[UpcomingCallResponse]:
        self._require_self(patient_id, user)
        now = utcnow()
        appointments = self._joinable_soon(now, patient_id=patient_id)
        return [UpcomingCallResponse.from_model(a, now) for a in appointments]

    def doctor_stats(self, doctor_id: str, user: CurrentUser) -> AppointmentStatsResponse:
        self._require_self(doctor_id, user)
        counts = self.repo.count_by_status(self.db, doctor_id)
        scheduled = counts.get(AppointmentStatus.scheduled.value, 0)
        in_progress = counts.get(AppointmentStatus.in_progress.value, 0)
        completed = counts.get(AppointmentStatus.completed.value, 0)
        return AppointmentStatsResponse(
            total=scheduled + in_progress + completed,
            completed=completed,
            scheduled=scheduled,
            cancelled=counts.get(AppointmentStatus.cancelled.value, 0),
        )

    def count_patients(self, doctor_id: str, user: CurrentUser) -> int:
        self._require_self(doctor_id, user)
        return self.repo.count_unique_patients(self.db, doctor_id)

    def doctor_patients(
        self, doctor_id: str, user: CurrentUser, page: int, limit: int
    ) -> DoctorPatientsResponse:
        self._require_self(doctor_id, user)
        total = self.repo.count_unique_patients(self.db, doctor_id)
        summaries = self.repo.patient_summaries(self.db, doctor_id, page, limit)
        return DoctorPatientsResponse(
            patients=[DoctorPatientSummary(**s) for s in summaries],
            totalPages=math.ceil(total / limit),
            currentPage=page,
            total=total,
        )

    def join_call(self, appointment_id: int, user: CurrentUser) -> JoinCallResponse:
        """Hand out the room URL while the join window is open"""
        appointment = self._get_for_participant(appointment_id, user)

        if appointment.status not in ACTIVE_APPOINTMENT_STATUSES:
            raise HTTPException(
                status_code=400, detail=f"Cannot join an appointment that is {appointment.status}"
            )

        state = join_window_state(appointment.scheduled_date, appointment.duration)
        if state is JoinWindowState.too_early:
            raise HTTPException(status_code=400, detail=TOO_EARLY_MESSAGE)
        if state is JoinWindowState.ended:
            raise HTTPException(status_code=400, detail=ENDED_MESSAGE)

        if appointment.status == AppointmentStatus.scheduled.value:
            appointment = self.repo.update_status(
                self.db, appointment, AppointmentStatus.in_progress.value
            )
            logger.info(f"📞 Appointment {appointment.id} call started by {user.id}")
        else:
            logger.info(f"📞 User {user.id} joined appointment {appointment.id}")

        return JoinCallResponse(
            roomUrl=appointment.daily_room_url,
            roomName=appointment.daily_room_name,
            appointment=AppointmentResponse.from_model(appointment),
        )

    def update_status(
        self, appointment_id: int, user: CurrentUser, data: AppointmentStatusUpdate
    ) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        if appointment.doctor_id != user.id:
            logger.warning(f"⚠️ User {user.id} tried to update appointment {appointment_id}")
            raise HTTPException(status_code=403, detail="Access denied")

        target = data.status.value
        if target != appointment.status and not can_transition_appointment(appointment.status, target):
            raise HTTPException(
                status_code=400,
                detail=f"Cannot change appointment status from {appointment.status} to {target}",
            )

        try:
            notes = sanitize_text(data.meetingNotes, max_length=2000)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        previous = appointment.status
        appointment = self.repo.update_status(self.db, appointment, target, notes)
        logger.info(f"✅ Appointment {appointment.id} status {previous} -> {target}")
        return appointment
