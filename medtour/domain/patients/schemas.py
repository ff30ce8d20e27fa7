"""Patient domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import MedicalReport, Patient
from ...shared.validators import validate_email, validate_phone
from ..appointments.schemas import AppointmentResponse, UpcomingCallResponse


class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"
    prefer_not_to_say = "prefer-not-to-say"


class BloodGroup(str, Enum):
    a_pos = "A+"
    a_neg = "A-"
    b_pos = "B+"
    b_neg = "B-"
    ab_pos = "AB+"
    ab_neg = "AB-"
    o_pos = "O+"
    o_neg = "O-"


class SmokingStatus(str, Enum):
    never = "never"
    former = "former"
    current = "current"


class DrinkingStatus(str, Enum):
    never = "never"
    occasional = "occasional"
    regular = "regular"
    former = "former"


class ExerciseFrequency(str, Enum):
    none = "none"
    light = "light"
    moderate = "moderate"
    heavy = "heavy"


OPTIONAL_FIELDS = (
    "height",
    "weight",
    "bloodGroup",
    "allergies",
    "currentMedications",
    "pastIllnesses",
    "surgicalHistory",
    "familyMedicalHistory",
    "smokingStatus",
    "drinkingStatus",
    "exerciseFrequency",
    "dietaryRestrictions",
)


class PatientProfileCreate(BaseModel):
    """Patient profile as submitted by the multipart form.

    Form fields arrive as strings; blank optional fields are treated as
    absent rather than invalid.
    """

    firstName: str = Field(..., min_length=1, max_length=255)
    lastName: str = Field(..., min_length=1, max_length=255)
    email: str
    phone: str
    dateOfBirth: date
    gender: Gender

    height: Optional[float] = Field(None, gt=0, le=300)
    weight: Optional[float] = Field(None, gt=0, le=700)
    bloodGroup: Optional[BloodGroup] = None

    emergencyContact: str = Field(..., min_length=1, max_length=255)
    emergencyPhone: str

    allergies: Optional[str] = Field(None, max_length=2000)
    currentMedications: Optional[str] = Field(None, max_length=2000)
    pastIllnesses: Optional[str] = Field(None, max_length=2000)
    surgicalHistory: Optional[str] = Field(None, max_length=2000)
    familyMedicalHistory: Optional[str] = Field(None, max_length=2000)

    smokingStatus: Optional[SmokingStatus] = None
    drinkingStatus: Optional[DrinkingStatus] = None
    exerciseFrequency: Optional[ExerciseFrequency] = None
    dietaryRestrictions: Optional[str] = Field(None, max_length=2000)

    class Config:
        str_strip_whitespace = True

    @field_validator(*OPTIONAL_FIELDS, mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v):
        if not v:
            raise ValueError("Email is required")
        return validate_email(v)

    @field_validator("phone", "emergencyPhone")
    @classmethod
    def validate_phone_number(cls, v):
        if not v:
            raise ValueError("Phone number is required")
        return validate_phone(v)

    @field_validator("dateOfBirth")
    @classmethod
    def validate_date_of_birth(cls, v):
        if v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return v


class MedicalReportResponse(BaseModel):
    id: int
    fileName: str
    originalName: str
    fileSize: int
    contentType: Optional[str] = None
    uploadDate: Optional[datetime] = None
    url: str

    @classmethod
    def from_model(cls, report: MedicalReport) -> "MedicalReportResponse":
        return cls(
            id=report.id,
            fileName=report.file_name,
            originalName=report.original_name,
            fileSize=report.file_size,
            contentType=report.content_type,
            uploadDate=report.upload_date,
            url=f"/api/patient/reports/{report.id}",
        )


class PatientProfileResponse(BaseModel):
    id: int
    clerkUserId: str
    firstName: str
    lastName: str
    email: str
    phone: str
    dateOfBirth: date
    gender: str
    height: Optional[float] = None
    weight: Optional[float] = None
    bloodGroup: Optional[str] = None
    emergencyContact: str
    emergencyPhone: str
    allergies: Optional[str] = None
    currentMedications: Optional[str] = None
    pastIllnesses: Optional[str] = None
    surgicalHistory: Optional[str] = None
    familyMedicalHistory: Optional[str] = None
    smokingStatus: Optional[str] = None
    drinkingStatus: Optional[str] = None
    exerciseFrequency: Optional[str] = None
    dietaryRestrictions: Optional[str] = None
    medicalReports: list[MedicalReportResponse] = []
    isProfileComplete: bool
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, patient: Patient) -> "PatientProfileResponse":
        return cls(
            id=patient.id,
            clerkUserId=patient.clerk_user_id,
            firstName=patient.first_name,
            lastName=patient.last_name,
            email=patient.email,
            phone=patient.phone,
            dateOfBirth=patient.date_of_birth,
            gender=patient.gender,
            height=patient.height,
            weight=patient.weight,
            bloodGroup=patient.blood_group,
            emergencyContact=patient.emergency_contact,
            emergencyPhone=patient.emergency_phone,
            allergies=patient.allergies,
            currentMedications=patient.current_medications,
            pastIllnesses=patient.past_illnesses,
            surgicalHistory=patient.surgical_history,
            familyMedicalHistory=patient.family_medical_history,
            smokingStatus=patient.smoking_status,
            drinkingStatus=patient.drinking_status,
            exerciseFrequency=patient.exercise_frequency,
            dietaryRestrictions=patient.dietary_restrictions,
            medicalReports=[MedicalReportResponse.from_model(r) for r in patient.medical_reports],
            isProfileComplete=patient.is_profile_complete,
            createdAt=patient.created_at,
            updatedAt=patient.updated_at,
        )


class PatientSummary(BaseModel):
    id: int
    firstName: str
    lastName: str
    isProfileComplete: bool


class PatientProfileSaved(BaseModel):
    success: bool
    message: str
    patient: PatientSummary


class PatientProfileStatus(BaseModel):
    success: bool
    exists: bool
    isComplete: bool


class PatientAppointmentsResponse(BaseModel):
    success: bool = True
    appointments: list[AppointmentResponse]
    total: int


class UpcomingCallsResponse(BaseModel):
    calls: list[UpcomingCallResponse]
    total: int
