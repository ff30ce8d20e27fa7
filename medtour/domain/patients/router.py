"""Patient router - FastAPI endpoints for the patient portal"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ...auth import CurrentUser, get_current_user
from ...database import get_db
from ..appointments.router import get_appointment_service
from ..appointments.schemas import AppointmentResponse
from ..appointments.service import AppointmentService
from ..doctors.router import get_doctor_service
from ..doctors.schemas import DoctorCardResponse, DoctorPublicResponse
from ..doctors.service import DoctorService
from .schemas import (
    PatientAppointmentsResponse,
    PatientProfileCreate,
    PatientProfileResponse,
    PatientProfileSaved,
    PatientProfileStatus,
    PatientSummary,
    UpcomingCallsResponse,
)
from .service import PatientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/patient", tags=["Patients"])


def get_patient_service(db: Session = Depends(get_db)) -> PatientService:
    """Dependency injection for PatientService"""
    return PatientService(db)


@router.post("/profile", response_model=PatientProfileSaved, status_code=201)
async def save_patient_profile(
    firstName: Optional[str] = Form(None),
    lastName: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    dateOfBirth: Optional[str] = Form(None),
    gender: Optional[str] = Form(None),
    height: Optional[str] = Form(None),
    weight: Optional[str] = Form(None),
    bloodGroup: Optional[str] = Form(None),
    emergencyContact: Optional[str] = Form(None),
    emergencyPhone: Optional[str] = Form(None),
    allergies: Optional[str] = Form(None),
    currentMedications: Optional[str] = Form(None),
    pastIllnesses: Optional[str] = Form(None),
    surgicalHistory: Optional[str] = Form(None),
    familyMedicalHistory: Optional[str] = Form(None),
    smokingStatus: Optional[str] = Form(None),
    drinkingStatus: Optional[str] = Form(None),
    exerciseFrequency: Optional[str] = Form(None),
    dietaryRestrictions: Optional[str] = Form(None),
    medicalReports: list[UploadFile] = File(default=[]),
    current_user: CurrentUser = Depends(get_current_user),
    service: PatientService = Depends(get_patient_service),
):
    """Create or update the caller's patient profile (multipart, with optional reports)"""
    form = {
        "firstName": firstName,
        "lastName": lastName,
        "email": email,
        "phone": phone,
        "dateOfBirth": dateOfBirth,
        "gender": gender,
        "height": height,
        "weight": weight,
        "bloodGroup": bloodGroup,
        "emergencyContact": emergencyContact,
        "emergencyPhone": emergencyPhone,
        "allergies": allergies,
        "currentMedications": currentMedications,
        "pastIllnesses": pastIllnesses,
        "surgicalHistory": surgicalHistory,
        "familyMedicalHistory": familyMedicalHistory,
        "smokingStatus": smokingStatus,
        "drinkingStatus": drinkingStatus,
        "exerciseFrequency": exerciseFrequency,
        "dietaryRestrictions": dietaryRestrictions,
    }

    try:
        data = PatientProfileCreate(**form)
    except ValidationError as e:
        logger.warning(f"⚠️ Invalid patient profile from {current_user.id}: {e.error_count()} error(s)")
        raise HTTPException(
            status_code=400,
            detail=e.errors(include_url=False, include_context=False, include_input=False),
        )

    patient = await service.save_profile(data, medicalReports, current_user)
    return PatientProfileSaved(
        success=True,
        message="Patient profile saved successfully",
        patient=PatientSummary(
            id=patient.id,
            firstName=patient.first_name,
            lastName=patient.last_name,
            isProfileComplete=patient.is_profile_complete,
        ),
    )


@router.get("/profile", response_model=PatientProfileResponse)
async def get_patient_profile(
    current_user: CurrentUser = Depends(get_current_user),
    service: PatientService = Depends(get_patient_service),
):
    return PatientProfileResponse.from_model(service.get_own_profile(current_user))


@router.get("/profile/{clerk_user_id}", response_model=PatientProfileResponse)
async def get_patient_profile_by_id(
    clerk_user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: PatientService = Depends(get_patient_service),
):
    """Patient profile, for the patient or a doctor they sent a review request to"""
    return PatientProfileResponse.from_model(service.get_profile_for(clerk_user_id, current_user))


@router.get("/reports/{report_id}")
async def download_medical_report(
    report_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: PatientService = Depends(get_patient_service),
):
    """Stream a stored medical report to the patient or a doctor they wrote to"""
    report = service.get_report(report_id, current_user)
    logger.info(f"📥 Report {report_id} downloaded by {current_user.id}")
    return FileResponse(
        report.file_path,
        media_type=report.content_type or "application/octet-stream",
        filename=report.original_name,
        content_disposition_type="inline",
    )


@router.get("/profile-status/{clerk_user_id}", response_model=PatientProfileStatus)
async def get_patient_profile_status(
    clerk_user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: PatientService = Depends(get_patient_service),
):
    return service.get_profile_status(clerk_user_id, current_user)


@router.get("/doctor/{doctor_id}", response_model=DoctorCardResponse)
async def get_doctor_card(
    doctor_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: DoctorService = Depends(get_doctor_service),
):
    """Public profile of a doctor, as shown before requesting a review"""
    profile = service.get_public_profile(doctor_id)
    return DoctorCardResponse(success=True, doctor=DoctorPublicResponse.from_model(profile))


@router.get("/appointments/{patient_id}", response_model=PatientAppointmentsResponse)
async def get_patient_appointments(
    patient_id: str,
    status: Optional[str] = Query("all"),
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointments = service.list_patient_appointments(patient_id, current_user, status)
    return PatientAppointmentsResponse(
        success=True,
        appointments=[AppointmentResponse.from_model(a) for a in appointments],
        total=len(appointments),
    )


@router.get("/upcoming-calls/{patient_id}", response_model=UpcomingCallsResponse)
async def get_patient_upcoming_calls(
    patient_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Active calls whose join window has not closed yet, soonest first"""
    calls = service.upcoming_for_patient(patient_id, current_user)
    return UpcomingCallsResponse(calls=calls, total=len(calls))
