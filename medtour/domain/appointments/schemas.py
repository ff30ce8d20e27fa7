"""Appointment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import Appointment
from ...shared.validators import to_naive_utc
from ..scheduling import AppointmentStatus, can_join


class AppointmentFromRequest(BaseModel):
    """Schema for turning a review request into an appointment"""

    reviewRequestId: int
    scheduledDate: datetime
    duration: int = Field(30, ge=1, le=240)

    @field_validator("scheduledDate")
    @classmethod
    def normalize_scheduled_date(cls, v):
        return to_naive_utc(v)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
    meetingNotes: Optional[str] = Field(None, max_length=2000)


class AppointmentResponse(BaseModel):
    """Appointment as returned to its participants.

    The room URL is deliberately absent; it is only handed out by the join
    endpoint once the join window is open.
    """

    id: int
    publicId: str
    reviewRequestId: int
    doctorId: str
    patientId: str
    doctorName: str
    patientName: str
    scheduledDate: datetime
    duration: int
    status: str
    meetingNotes: Optional[str] = None
    consultationFee: float
    paymentStatus: str
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, appointment: Appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            publicId=appointment.public_id,
            reviewRequestId=appointment.review_request_id,
            doctorId=appointment.doctor_id,
            patientId=appointment.patient_id,
            doctorName=appointment.doctor_name,
            patientName=appointment.patient_name,
            scheduledDate=appointment.scheduled_date,
            duration=appointment.duration,
            status=appointment.status,
            meetingNotes=appointment.meeting_notes,
            consultationFee=appointment.consultation_fee,
            paymentStatus=appointment.payment_status,
            createdAt=appointment.created_at,
            updatedAt=appointment.updated_at,
        )


class UpcomingCallResponse(AppointmentResponse):
    canJoin: bool

    @classmethod
    def from_model(cls, appointment: Appointment, now: Optional[datetime] = None) -> "UpcomingCallResponse":
        base = AppointmentResponse.from_model(appointment).model_dump()
        return cls(
            **base,
            canJoin=can_join(appointment.scheduled_date, appointment.duration, now),
        )


class AppointmentCreated(BaseModel):
    message: str
    appointment: AppointmentResponse


class AppointmentUpdated(BaseModel):
    message: str
    appointment: AppointmentResponse


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentResponse]
    totalPages: int
    currentPage: int
    total: int


class UpcomingAppointmentsResponse(BaseModel):
    appointments: list[UpcomingCallResponse]
    total: int


class JoinCallResponse(BaseModel):
    roomUrl: str
    roomName: str
    appointment: AppointmentResponse


class AppointmentStatsResponse(BaseModel):
    total: int
    completed: int
    scheduled: int
    cancelled: int


class PatientsCountResponse(BaseModel):
    uniquePatients: int


class DoctorPatientSummary(BaseModel):
    patientId: str
    patientName: str
    latestAppointment: datetime
    totalAppointments: int
    appointmentStatuses: list[str]


class DoctorPatientsResponse(BaseModel):
    patients: list[DoctorPatientSummary]
    totalPages: int
    currentPage: int
    total: int
