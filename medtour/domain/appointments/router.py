"""Appointment router - FastAPI endpoints for appointments and video calls"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import CurrentUser, get_current_user
from ...database import get_db
from ...services.daily_service import DailyService, get_daily_service
from .schemas import (
    AppointmentCreated,
    AppointmentFromRequest,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatsResponse,
    AppointmentStatusUpdate,
    AppointmentUpdated,
    DoctorPatientsResponse,
    JoinCallResponse,
    PatientsCountResponse,
    UpcomingAppointmentsResponse,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["Appointments"])


def get_appointment_service(
    db: Session = Depends(get_db),
    daily: DailyService = Depends(get_daily_service),
) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db, daily)


@router.post("/create-from-request", response_model=AppointmentCreated, status_code=201)
async def create_appointment_from_request(
    data: AppointmentFromRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Approve a review request and book its video appointment"""
    appointment = await service.approve_review_request(
        data.reviewRequestId, current_user, data.scheduledDate, data.duration
    )
    return AppointmentCreated(
        message="Appointment created successfully",
        appointment=AppointmentResponse.from_model(appointment),
    )


@router.get("/doctor/{doctor_id}", response_model=AppointmentListResponse)
async def get_doctor_appointments(
    doctor_id: str,
    status: Optional[str] = Query(None),
    day: Optional[date] = Query(None, alias="date", description="UTC day, YYYY-MM-DD"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.list_doctor_appointments(doctor_id, current_user, status, day, page, limit)


@router.get("/doctor/{doctor_id}/upcoming", response_model=UpcomingAppointmentsResponse)
async def get_doctor_upcoming_calls(
    doctor_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Calls in the next 7 days that can still be joined"""
    return service.upcoming_for_doctor(doctor_id, current_user)


@router.get("/doctor/{doctor_id}/stats", response_model=AppointmentStatsResponse)
async def get_doctor_appointment_stats(
    doctor_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.doctor_stats(doctor_id, current_user)


@router.get("/doctor/{doctor_id}/patients-count", response_model=PatientsCountResponse)
async def get_doctor_patients_count(
    doctor_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return PatientsCountResponse(uniquePatients=service.count_patients(doctor_id, current_user))


@router.get("/doctor/{doctor_id}/patients", response_model=DoctorPatientsResponse)
async def get_doctor_patients(
    doctor_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Patients the doctor has seen, most recent first"""
    return service.doctor_patients(doctor_id, current_user, page, limit)


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return AppointmentResponse.from_model(service.get_appointment(appointment_id, current_user))


@router.get("/{appointment_id}/join", response_model=JoinCallResponse)
async def join_call(
    appointment_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Room URL of the call, available from 15 minutes before the start"""
    return service.join_call(appointment_id, current_user)


@router.patch("/{appointment_id}/status", response_model=AppointmentUpdated)
async def update_appointment_status(
    appointment_id: int,
    data: AppointmentStatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.update_status(appointment_id, current_user, data)
    return AppointmentUpdated(
        message="Appointment updated successfully",
        appointment=AppointmentResponse.from_model(appointment),
    )
