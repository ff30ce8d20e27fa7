"""Doctor router - FastAPI endpoints for doctor profiles"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import CurrentUser, get_current_user
from ...database import get_db
from .schemas import (
    DoctorListResponse,
    DoctorProfileCreate,
    DoctorProfileResponse,
    DoctorProfileSaved,
    Specialization,
)
from .service import DoctorService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/doctor", tags=["Doctors"])


def get_doctor_service(db: Session = Depends(get_db)) -> DoctorService:
    """Dependency injection for DoctorService"""
    return DoctorService(db)


@router.post("/profile", response_model=DoctorProfileSaved)
async def save_doctor_profile(
    data: DoctorProfileCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: DoctorService = Depends(get_doctor_service),
):
    """Create or update the caller's doctor profile"""
    profile = service.save_profile(data, current_user)
    return DoctorProfileSaved(
        message="Profile updated successfully",
        profile=DoctorProfileResponse.from_model(profile),
    )


@router.get("/profile", response_model=DoctorProfileResponse)
async def get_doctor_profile(
    current_user: CurrentUser = Depends(get_current_user),
    service: DoctorService = Depends(get_doctor_service),
):
    """Get the caller's doctor profile"""
    return DoctorProfileResponse.from_model(service.get_own_profile(current_user))


@router.get("/all", response_model=DoctorListResponse)
async def list_doctors(
    specialization: Optional[Specialization] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: DoctorService = Depends(get_doctor_service),
):
    """Public listing of doctors with a complete profile"""
    return service.list_doctors(
        specialization.value if specialization else None, search, page, limit
    )
