"""Doctor service - Business logic for doctor profiles"""

import logging
import math
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import CurrentUser
from ...models import DoctorProfile
from ...utils.sanitization import sanitize_string
from .repository import DoctorRepository
from .schemas import DoctorListResponse, DoctorProfileCreate, DoctorPublicResponse

logger = logging.getLogger(__name__)


class DoctorService:
    """Service layer for doctor profile business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DoctorRepository()

    def save_profile(self, data: DoctorProfileCreate, user: CurrentUser) -> DoctorProfile:
        """Create or overwrite the caller's profile and mark it complete"""
        profile_data = {
            "full_name": sanitize_string(data.fullName),
            "specialization": data.specialization.value,
            "qualification": sanitize_string(data.qualification),
            "experience": data.experience,
            "consultation_fee": data.consultationFee,
            "clinic_address": sanitize_string(data.clinicAddress),
            "phone_number": data.phoneNumber,
            "email": data.email,
            "bio": sanitize_string(data.bio) if data.bio else None,
            "languages": [sanitize_string(language) for language in data.languages],
            "availability": sanitize_string(data.availability) if data.availability else None,
            "is_profile_complete": True,
        }

        profile = self.repo.upsert_profile(self.db, user.id, **profile_data)
        logger.info(f"✅ Doctor profile saved for {user.id}")
        return profile

    def get_own_profile(self, user: CurrentUser) -> DoctorProfile:
        profile = self.repo.get_by_doctor_id(self.db, user.id)
        if not profile:
            raise HTTPException(status_code=404, detail="Profile not found")
        return profile

    def get_public_profile(self, doctor_id: str) -> DoctorProfile:
        """Complete profile of any doctor, as shown to patients"""
        profile = self.repo.get_complete_profile(self.db, doctor_id)
        if not profile:
            raise HTTPException(status_code=404, detail="Doctor not found")
        return profile

    def list_doctors(
        self,
        specialization: Optional[str],
        search: Optional[str],
        page: int,
        limit: int,
    ) -> DoctorListResponse:
        search = search.strip() if search else None
        doctors, total = self.repo.list_complete_profiles(
            self.db, specialization, search, page, limit
        )
        return DoctorListResponse(
            doctors=[DoctorPublicResponse.from_model(d) for d in doctors],
            totalPages=math.ceil(total / limit),
            currentPage=page,
            total=total,
        )
