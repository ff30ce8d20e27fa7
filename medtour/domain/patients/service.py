"""Patient service - Business logic for patient profiles and their calls"""

import logging
import os

from fastapi import HTTPException, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...auth import CurrentUser
from ...models import MedicalReport, Patient
from ...utils.file_storage import UploadRejected, remove_stored_reports, store_medical_reports
from ...utils.sanitization import sanitize_string, sanitize_text
from ..review_requests.repository import ReviewRequestRepository
from .repository import PatientRepository
from .schemas import PatientProfileCreate, PatientProfileStatus

logger = logging.getLogger(__name__)

HISTORY_MAX_LENGTH = 2000


class PatientService:
    """Service layer for patient profile business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PatientRepository()
        self.requests = ReviewRequestRepository()

    @staticmethod
    def _profile_columns(data: PatientProfileCreate) -> dict:
        def history(value):
            return sanitize_text(value, max_length=HISTORY_MAX_LENGTH)

        return {
            "first_name": sanitize_string(data.firstName),
            "last_name": sanitize_string(data.lastName),
            "email": data.email,
            "phone": data.phone,
            "date_of_birth": data.dateOfBirth,
            "gender": data.gender.value,
            "height": data.height,
            "weight": data.weight,
            "blood_group": data.bloodGroup.value if data.bloodGroup else None,
            "emergency_contact": sanitize_string(data.emergencyContact),
            "emergency_phone": data.emergencyPhone,
            "allergies": history(data.allergies),
            "current_medications": history(data.currentMedications),
            "past_illnesses": history(data.pastIllnesses),
            "surgical_history": history(data.surgicalHistory),
            "family_medical_history": history(data.familyMedicalHistory),
            "smoking_status": data.smokingStatus.value if data.smokingStatus else None,
            "drinking_status": data.drinkingStatus.value if data.drinkingStatus else None,
            "exercise_frequency": data.exerciseFrequency.value if data.exerciseFrequency else None,
            "dietary_restrictions": history(data.dietaryRestrictions),
            "is_profile_complete": True,
        }

    async def save_profile(
        self, data: PatientProfileCreate, files: list[UploadFile], user: CurrentUser
    ) -> Patient:
        """
        Create or overwrite the caller's profile and attach uploaded reports.

        Reports are written to disk before the database commit; if the
        commit fails they are removed again so a rejected save leaves
        nothing behind.
        """
        try:
            profile_data = self._profile_columns(data)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        try:
            reports = await store_medical_reports(user.id, files)
        except UploadRejected as e:
            logger.warning(f"⚠️ Report upload rejected for {user.id}: {e.code}")
            raise HTTPException(status_code=400, detail={"message": e.message, "error": e.code})
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except OSError as e:
            logger.error(f"❌ Failed to store medical reports for {user.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to store medical reports")

        try:
            patient = self.repo.save_profile(self.db, user.id, profile_data, reports)
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to save patient profile for {user.id}: {e}")
            remove_stored_reports(reports)
            raise HTTPException(status_code=500, detail="Failed to save patient profile")

        logger.info(f"✅ Patient profile saved for {user.id} ({len(reports)} new report(s))")
        return patient

    def get_own_profile(self, user: CurrentUser) -> Patient:
        patient = self.repo.get_by_clerk_user_id(self.db, user.id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient profile not found")
        return patient

    def _require_record_access(self, clerk_user_id: str, user: CurrentUser) -> None:
        """The patient and doctors they sent a review request to may read their records"""
        if clerk_user_id != user.id and not self.requests.exists_between(
            self.db, clerk_user_id, user.id
        ):
            logger.warning(f"⚠️ User {user.id} denied access to records of patient {clerk_user_id}")
            raise HTTPException(status_code=403, detail="Access denied")

    def get_profile_for(self, clerk_user_id: str, user: CurrentUser) -> Patient:
        """A patient's profile, readable by the patient and by doctors they wrote to"""
        self._require_record_access(clerk_user_id, user)

        patient = self.repo.get_by_clerk_user_id(self.db, clerk_user_id)
        if not patient:
            raise HTTPException(status_code=404, detail="Patient profile not found")
        return patient

    def get_report(self, report_id: int, user: CurrentUser) -> MedicalReport:
        report = self.repo.get_report(self.db, report_id)
        if not report:
            raise HTTPException(status_code=404, detail="Report not found")
        self._require_record_access(report.patient.clerk_user_id, user)

        if not os.path.isfile(report.file_path):
            logger.error(f"❌ Report {report_id} is missing from disk at {report.file_path}")
            raise HTTPException(status_code=404, detail="Report file not found")
        return report

    def get_profile_status(self, clerk_user_id: str, user: CurrentUser) -> PatientProfileStatus:
        if clerk_user_id != user.id:
            raise HTTPException(status_code=403, detail="Access denied")

        patient = self.repo.get_by_clerk_user_id(self.db, clerk_user_id)
        return PatientProfileStatus(
            success=True,
            exists=patient is not None,
            isComplete=bool(patient and patient.is_profile_complete),
        )
