"""Patient repository - Database operations for patient profiles"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import MedicalReport, Patient
from ...utils.file_storage import StoredReport


class PatientRepository:
    """Repository for patient profile database operations"""

    @staticmethod
    def get_by_clerk_user_id(db: Session, clerk_user_id: str) -> Optional[Patient]:
        return db.query(Patient).filter(Patient.clerk_user_id == clerk_user_id).first()

    @staticmethod
    def get_report(db: Session, report_id: int) -> Optional[MedicalReport]:
        return db.query(MedicalReport).filter(MedicalReport.id == report_id).first()

    @staticmethod
    def save_profile(
        db: Session,
        clerk_user_id: str,
        profile_data: dict,
        reports: list[StoredReport],
    ) -> Patient:
        """
        Create or overwrite a profile and append its new reports in one commit.

        Every scalar field in ``profile_data`` replaces the stored value,
        including ``None``. Existing reports are kept.
        """
        try:
            patient = db.query(Patient).filter(Patient.clerk_user_id == clerk_user_id).first()
            if patient is None:
                patient = Patient(clerk_user_id=clerk_user_id, **profile_data)
                db.add(patient)
            else:
                for key, value in profile_data.items():
                    setattr(patient, key, value)

            for report in reports:
                patient.medical_reports.append(
                    MedicalReport(
                        file_name=report.file_name,
                        original_name=report.original_name,
                        file_path=report.file_path,
                        file_size=report.file_size,
                        content_type=report.content_type,
                    )
                )

            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(patient)
        return patient
