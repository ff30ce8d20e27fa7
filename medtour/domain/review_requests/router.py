"""Review request router - FastAPI endpoints for the review workflow"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import CurrentUser, get_current_user
from ...database import get_db
from ...services.daily_service import DailyService, get_daily_service
from ..appointments.schemas import AppointmentResponse
from .schemas import (
    DoctorReviewRequestList,
    PatientReviewRequestList,
    ReviewRequestCreate,
    ReviewRequestCreated,
    ReviewRequestResponse,
    ReviewRequestStats,
    ReviewRequestUpdated,
    ReviewStatusUpdate,
)
from .service import ReviewRequestService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/review-requests", tags=["Review Requests"])


def get_review_request_service(
    db: Session = Depends(get_db),
    daily: DailyService = Depends(get_daily_service),
) -> ReviewRequestService:
    """Dependency injection for ReviewRequestService"""
    return ReviewRequestService(db, daily)


@router.post("/create", response_model=ReviewRequestCreated, status_code=201)
async def create_review_request(
    data: ReviewRequestCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: ReviewRequestService = Depends(get_review_request_service),
):
    """Send a case to a doctor for review"""
    review_request = service.create_request(data, current_user)
    return ReviewRequestCreated(
        message="Review request submitted successfully",
        request=ReviewRequestResponse.from_model(review_request),
    )


@router.get("/doctor/{doctor_id}", response_model=DoctorReviewRequestList)
async def get_doctor_review_requests(
    doctor_id: str,
    status: Optional[str] = Query("pending"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    service: ReviewRequestService = Depends(get_review_request_service),
):
    """Review requests addressed to the calling doctor"""
    return service.list_for_doctor(doctor_id, current_user, status, page, limit)


@router.get("/patient/{patient_id}", response_model=PatientReviewRequestList)
async def get_patient_review_requests(
    patient_id: str,
    status: Optional[str] = Query("all"),
    current_user: CurrentUser = Depends(get_current_user),
    service: ReviewRequestService = Depends(get_review_request_service),
):
    """Review requests sent by the calling patient"""
    requests = service.list_for_patient(patient_id, current_user, status)
    return PatientReviewRequestList(
        requests=[ReviewRequestResponse.from_model(r) for r in requests],
        total=len(requests),
    )


@router.get("/stats/{doctor_id}", response_model=ReviewRequestStats)
async def get_review_request_stats(
    doctor_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: ReviewRequestService = Depends(get_review_request_service),
):
    return service.stats(doctor_id, current_user)


@router.patch("/{request_id}/status", response_model=ReviewRequestUpdated)
async def update_review_request_status(
    request_id: int,
    data: ReviewStatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: ReviewRequestService = Depends(get_review_request_service),
):
    """Review, approve (booking the appointment) or reject a request"""
    review_request, appointment = await service.update_status(request_id, current_user, data)
    return ReviewRequestUpdated(
        message="Review request updated successfully",
        request=ReviewRequestResponse.from_model(review_request),
        appointment=AppointmentResponse.from_model(appointment) if appointment else None,
    )


@router.get("/{request_id}", response_model=ReviewRequestResponse)
async def get_review_request(
    request_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: ReviewRequestService = Depends(get_review_request_service),
):
    return ReviewRequestResponse.from_model(service.get_request(request_id, current_user))
