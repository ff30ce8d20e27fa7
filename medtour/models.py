import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID used in external resource names"""
    return str(uuid.uuid4())


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    clerk_user_id = Column(String(255), unique=True, index=True, nullable=False)

    # Personal information
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(String(30), nullable=False)  # male, female, other, prefer-not-to-say

    # Physical information
    height = Column(Float, nullable=True)  # cm
    weight = Column(Float, nullable=True)  # kg
    blood_group = Column(String(5), nullable=True)

    # Emergency contact
    emergency_contact = Column(String(255), nullable=False)
    emergency_phone = Column(String(50), nullable=False)

    # Medical history
    allergies = Column(Text, nullable=True)
    current_medications = Column(Text, nullable=True)
    past_illnesses = Column(Text, nullable=True)
    surgical_history = Column(Text, nullable=True)
    family_medical_history = Column(Text, nullable=True)

    # Lifestyle
    smoking_status = Column(String(20), nullable=True)  # never, former, current
    drinking_status = Column(String(20), nullable=True)  # never, occasional, regular, former
    exercise_frequency = Column(String(20), nullable=True)  # none, light, moderate, heavy
    dietary_restrictions = Column(Text, nullable=True)

    is_profile_complete = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    medical_reports = relationship(
        "MedicalReport",
        back_populates="patient",
        cascade="all, delete-orphan",
        order_by="MedicalReport.id",
    )


class MedicalReport(Base):
    __tablename__ = "medical_reports"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)  # Name on disk
    original_name = Column(String(255), nullable=False)
    file_path = Column(String(1024), nullable=False)
    file_size = Column(Integer, nullable=False)
    content_type = Column(String(100), nullable=True)
    upload_date = Column(DateTime, server_default=func.now())

    patient = relationship("Patient", back_populates="medical_reports")


class DoctorProfile(Base):
    __tablename__ = "doctor_profiles"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(String(255), unique=True, index=True, nullable=False)  # Clerk user id
    full_name = Column(String(255), nullable=False)
    specialization = Column(String(50), nullable=False, index=True)
    qualification = Column(String(255), nullable=False)
    experience = Column(Integer, nullable=False)  # years
    consultation_fee = Column(Float, nullable=False)
    clinic_address = Column(String(500), nullable=False)
    phone_number = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False)
    bio = Column(Text, nullable=True)
    languages = Column(JSON, default=list, nullable=False)
    availability = Column(String(500), nullable=True)
    is_profile_complete = Column(Boolean, default=False, nullable=False)
    # No write path yet, defaults only
    rating = Column(Float, default=0, nullable=False)
    total_reviews = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class ReviewRequest(Base):
    __tablename__ = "review_requests"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(255), nullable=False, index=True)  # Clerk user id
    doctor_id = Column(String(255), nullable=False)  # Clerk user id
    patient_name = Column(String(255), nullable=False)
    patient_email = Column(String(255), nullable=False)
    condition = Column(String(500), nullable=False)
    message = Column(String(500), nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, reviewed, approved, rejected
    submitted_on = Column(DateTime, server_default=func.now())
    reviewed_on = Column(DateTime, nullable=True)
    doctor_notes = Column(String(1000), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointment = relationship("Appointment", back_populates="review_request", uselist=False)

    __table_args__ = (Index("ix_review_requests_doctor_status", "doctor_id", "status"),)


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, nullable=False, default=generate_public_id)
    review_request_id = Column(
        Integer, ForeignKey("review_requests.id"), unique=True, nullable=False
    )
    doctor_id = Column(String(255), nullable=False)  # Clerk user id
    patient_id = Column(String(255), nullable=False)  # Clerk user id
    patient_name = Column(String(255), nullable=False)
    doctor_name = Column(String(255), nullable=False)
    scheduled_date = Column(DateTime, nullable=False)  # naive UTC
    duration = Column(Integer, default=30, nullable=False)  # minutes
    # scheduled, in-progress, completed, cancelled, no-show
    status = Column(String(20), default="scheduled", nullable=False)
    daily_room_url = Column(String(500), nullable=False)
    daily_room_name = Column(String(255), nullable=False)
    meeting_notes = Column(String(2000), nullable=True)
    consultation_fee = Column(Float, nullable=False)
    # No write path yet, default only
    payment_status = Column(String(20), default="pending", nullable=False)  # pending, paid, refunded
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    review_request = relationship("ReviewRequest", back_populates="appointment")

    __table_args__ = (
        Index("ix_appointments_doctor_date", "doctor_id", "scheduled_date"),
        Index("ix_appointments_patient_date", "patient_id", "scheduled_date"),
        Index("ix_appointments_status_date", "status", "scheduled_date"),
    )
