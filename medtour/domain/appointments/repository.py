"""Appointment repository - Database operations for appointments"""

from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Appointment, ReviewRequest
from ..scheduling import ACTIVE_APPOINTMENT_STATUSES
from ..scheduling.transitions import OPEN_REVIEW_STATUSES, ReviewStatus

# Longest appointment the API accepts, in minutes
MAX_DURATION_MINUTES = 240


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def find_overlapping(
        db: Session, doctor_id: str, start: datetime, end: datetime
    ) -> Optional[Appointment]:
        """First active appointment of the doctor intersecting [start, end)"""
        candidates = (
            db.query(Appointment)
            .filter(
                Appointment.doctor_id == doctor_id,
                Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
                Appointment.scheduled_date < end,
                Appointment.scheduled_date > start - timedelta(minutes=MAX_DURATION_MINUTES),
            )
            .order_by(Appointment.scheduled_date)
            .all()
        )
        for appointment in candidates:
            if appointment.scheduled_date + timedelta(minutes=appointment.duration) > start:
                return appointment
        return None

    @staticmethod
    def create_for_request(
        db: Session,
        appointment: Appointment,
        reviewed_on: datetime,
        doctor_notes: Optional[str] = None,
    ) -> bool:
        """
        Insert the appointment and approve its review request atomically.

        The request is only flipped when it is still open; when another
        approval got there first nothing is written and False is returned.
        Database errors are left to the caller, after a rollback.
        """
        values = {
            ReviewRequest.status: ReviewStatus.approved.value,
            ReviewRequest.reviewed_on: reviewed_on,
        }
        if doctor_notes:
            values[ReviewRequest.doctor_notes] = doctor_notes

        try:
            db.add(appointment)
            db.flush()

            updated = (
                db.query(ReviewRequest)
                .filter(
                    ReviewRequest.id == appointment.review_request_id,
                    ReviewRequest.status.in_(OPEN_REVIEW_STATUSES),
                )
                .update(values, synchronize_session=False)
            )
            if updated != 1:
                db.rollback()
                return False

            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(appointment)
        return True

    @staticmethod
    def list_for_doctor(
        db: Session,
        doctor_id: str,
        status: Optional[str] = None,
        day: Optional[date] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Appointment], int]:
        query = db.query(Appointment).filter(Appointment.doctor_id == doctor_id)

        if status:
            query = query.filter(Appointment.status == status)

        if day:
            start = datetime(day.year, day.month, day.day)
            query = query.filter(
                Appointment.scheduled_date >= start,
                Appointment.scheduled_date < start + timedelta(days=1),
            )

        total = query.count()
        appointments = (
            query.order_by(Appointment.scheduled_date.asc(), Appointment.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return appointments, total

    @staticmethod
    def list_for_patient(
        db: Session, patient_id: str, status: Optional[str] = None
    ) -> list[Appointment]:
        query = db.query(Appointment).filter(Appointment.patient_id == patient_id)
        if status:
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.scheduled_date.desc(), Appointment.id.desc()).all()

    @staticmethod
    def list_active_between(
        db: Session,
        earliest: datetime,
        latest: Optional[datetime] = None,
        doctor_id: Optional[str] = None,
        patient_id: Optional[str] = None,
    ) -> list[Appointment]:
        """Active appointments starting in [earliest, latest], soonest first"""
        query = db.query(Appointment).filter(
            Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
            Appointment.scheduled_date >= earliest,
        )
        if latest is not None:
            query = query.filter(Appointment.scheduled_date <= latest)
        if doctor_id is not None:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if patient_id is not None:
            query = query.filter(Appointment.patient_id == patient_id)
        return query.order_by(Appointment.scheduled_date.asc(), Appointment.id.asc()).all()

    @staticmethod
    def count_by_status(db: Session, doctor_id: str) -> dict[str, int]:
        rows = (
            db.query(Appointment.status, func.count(Appointment.id))
            .filter(Appointment.doctor_id == doctor_id)
            .group_by(Appointment.status)
            .all()
        )
        return {status: count for status, count in rows}

    @staticmethod
    def count_unique_patients(db: Session, doctor_id: str) -> int:
        return (
            db.query(func.count(func.distinct(Appointment.patient_id)))
            .filter(Appointment.doctor_id == doctor_id)
            .scalar()
            or 0
        )

    @staticmethod
    def patient_summaries(
        db: Session, doctor_id: str, page: int = 1, limit: int = 20
    ) -> list[dict]:
        """One row per patient of the doctor, most recently seen first"""
        latest = func.max(Appointment.scheduled_date).label("latest_appointment")
        grouped = (
            db.query(
                Appointment.patient_id,
                latest,
                func.count(Appointment.id).label("total_appointments"),
            )
            .filter(Appointment.doctor_id == doctor_id)
            .group_by(Appointment.patient_id)
            .order_by(latest.desc(), Appointment.patient_id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        if not grouped:
            return []

        patient_ids = [row.patient_id for row in grouped]
        appointments = (
            db.query(Appointment)
            .filter(Appointment.doctor_id == doctor_id, Appointment.patient_id.in_(patient_ids))
            .order_by(Appointment.scheduled_date.asc(), Appointment.id.asc())
            .all()
        )

        by_patient: dict[str, list[Appointment]] = {}
        for appointment in appointments:
            by_patient.setdefault(appointment.patient_id, []).append(appointment)

        summaries = []
        for row in grouped:
            history = by_patient.get(row.patient_id, [])
            summaries.append(
                {
                    "patientId": row.patient_id,
                    "patientName": history[-1].patient_name if history else "",
                    "latestAppointment": row.latest_appointment,
                    "totalAppointments": row.total_appointments,
                    "appointmentStatuses": [a.status for a in history],
                }
            )
        return summaries

    @staticmethod
    def update_status(
        db: Session, appointment: Appointment, status: str, meeting_notes: Optional[str] = None
    ) -> Appointment:
        appointment.status = status
        if meeting_notes:
            appointment.meeting_notes = meeting_notes
        db.commit()
        db.refresh(appointment)
        return appointment
