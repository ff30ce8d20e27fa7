"""Review request schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import ReviewRequest
from ...shared.validators import to_naive_utc, validate_email, validate_user_id
from ..appointments.schemas import AppointmentResponse
from ..scheduling import ReviewStatus


class ReviewRequestCreate(BaseModel):
    """Schema for a patient asking a doctor to review their case"""

    doctorId: str
    patientName: str = Field(..., min_length=1, max_length=255)
    patientEmail: str
    condition: str = Field(..., min_length=1, max_length=500)
    message: Optional[str] = Field(None, max_length=500)

    class Config:
        str_strip_whitespace = True

    @field_validator("doctorId")
    @classmethod
    def validate_doctor_id(cls, v):
        return validate_user_id(v)

    @field_validator("patientEmail")
    @classmethod
    def validate_patient_email(cls, v):
        return validate_email(v)


class ReviewStatusUpdate(BaseModel):
    """Schema for a doctor moving a review request through its workflow"""

    status: ReviewStatus
    doctorNotes: Optional[str] = Field(None, max_length=1000)
    # Only used when approving
    scheduledDate: Optional[datetime] = None
    duration: int = Field(30, ge=1, le=240)

    @field_validator("scheduledDate")
    @classmethod
    def normalize_scheduled_date(cls, v):
        return to_naive_utc(v) if v else v


class ReviewRequestResponse(BaseModel):
    id: int
    patientId: str
    doctorId: str
    patientName: str
    patientEmail: str
    condition: str
    message: Optional[str] = None
    status: str
    submittedOn: Optional[datetime] = None
    reviewedOn: Optional[datetime] = None
    doctorNotes: Optional[str] = None
    appointmentId: Optional[int] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, request: ReviewRequest) -> "ReviewRequestResponse":
        return cls(
            id=request.id,
            patientId=request.patient_id,
            doctorId=request.doctor_id,
            patientName=request.patient_name,
            patientEmail=request.patient_email,
            condition=request.condition,
            message=request.message,
            status=request.status,
            submittedOn=request.submitted_on,
            reviewedOn=request.reviewed_on,
            doctorNotes=request.doctor_notes,
            appointmentId=request.appointment.id if request.appointment else None,
            createdAt=request.created_at,
            updatedAt=request.updated_at,
        )


class ReviewRequestCreated(BaseModel):
    message: str
    request: ReviewRequestResponse


class ReviewRequestUpdated(BaseModel):
    message: str
    request: ReviewRequestResponse
    appointment: Optional[AppointmentResponse] = None


class DoctorReviewRequestList(BaseModel):
    requests: list[ReviewRequestResponse]
    totalPages: int
    currentPage: int
    total: int
    pendingCount: int


class PatientReviewRequestList(BaseModel):
    requests: list[ReviewRequestResponse]
    total: int


class ReviewRequestStats(BaseModel):
    pending: int = 0
    reviewed: int = 0
    approved: int = 0
    rejected: int = 0
    total: int = 0
