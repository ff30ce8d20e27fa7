"""Doctor domain schemas - Pydantic models for validation"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import DoctorProfile
from ...shared.validators import validate_email, validate_phone


class Specialization(str, Enum):
    """Specializations a doctor can register under"""

    cardiology = "Cardiology"
    dermatology = "Dermatology"
    neurology = "Neurology"
    orthopedics = "Orthopedics"
    pediatrics = "Pediatrics"
    psychiatry = "Psychiatry"
    general_medicine = "General Medicine"
    surgery = "Surgery"
    gynecology = "Gynecology"
    ophthalmology = "Ophthalmology"
    ent = "ENT"
    radiology = "Radiology"


class DoctorProfileCreate(BaseModel):
    """Schema for creating or overwriting the caller's doctor profile"""

    fullName: str = Field(..., min_length=1, max_length=255)
    specialization: Specialization
    qualification: str = Field(..., min_length=1, max_length=255)
    experience: int = Field(..., ge=0, le=80)
    consultationFee: float = Field(..., ge=0)
    clinicAddress: str = Field(..., min_length=1, max_length=500)
    phoneNumber: str
    email: str
    bio: Optional[str] = Field(None, max_length=1000)
    languages: list[str] = Field(default_factory=list)
    availability: Optional[str] = Field(None, max_length=500)

    class Config:
        str_strip_whitespace = True

    @field_validator("phoneNumber")
    @classmethod
    def validate_phone_number(cls, v):
        return validate_phone(v)

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v):
        return validate_email(v)

    @field_validator("languages")
    @classmethod
    def clean_languages(cls, v):
        return [language.strip() for language in v if language and language.strip()]


class DoctorPublicResponse(BaseModel):
    """Doctor card shown to patients (no direct contact details)"""

    id: int
    doctorId: str
    fullName: str
    specialization: str
    qualification: str
    experience: int
    consultationFee: float
    clinicAddress: str
    bio: Optional[str]
    languages: list[str]
    availability: Optional[str]
    rating: float
    totalReviews: int
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, profile: DoctorProfile) -> "DoctorPublicResponse":
        return cls(
            id=profile.id,
            doctorId=profile.doctor_id,
            fullName=profile.full_name,
            specialization=profile.specialization,
            qualification=profile.qualification,
            experience=profile.experience,
            consultationFee=profile.consultation_fee,
            clinicAddress=profile.clinic_address,
            bio=profile.bio,
            languages=profile.languages or [],
            availability=profile.availability,
            rating=profile.rating or 0,
            totalReviews=profile.total_reviews or 0,
            createdAt=profile.created_at,
        )


class DoctorProfileResponse(DoctorPublicResponse):
    """Full profile, returned to the doctor who owns it"""

    phoneNumber: str
    email: str
    isProfileComplete: bool
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, profile: DoctorProfile) -> "DoctorProfileResponse":
        public = DoctorPublicResponse.from_model(profile).model_dump()
        return cls(
            **public,
            phoneNumber=profile.phone_number,
            email=profile.email,
            isProfileComplete=profile.is_profile_complete,
            updatedAt=profile.updated_at,
        )


class DoctorProfileSaved(BaseModel):
    message: str
    profile: DoctorProfileResponse


class DoctorListResponse(BaseModel):
    doctors: list[DoctorPublicResponse]
    totalPages: int
    currentPage: int
    total: int


class DoctorCardResponse(BaseModel):
    success: bool
    doctor: DoctorPublicResponse
