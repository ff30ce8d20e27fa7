"""Doctor repository - Database operations for doctor profiles"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import DoctorProfile


class DoctorRepository:
    """Repository for doctor profile database operations"""

    @staticmethod
    def get_by_doctor_id(db: Session, doctor_id: str) -> Optional[DoctorProfile]:
        return db.query(DoctorProfile).filter(DoctorProfile.doctor_id == doctor_id).first()

    @staticmethod
    def get_complete_profile(db: Session, doctor_id: str) -> Optional[DoctorProfile]:
        return (
            db.query(DoctorProfile)
            .filter(
                DoctorProfile.doctor_id == doctor_id,
                DoctorProfile.is_profile_complete.is_(True),
            )
            .first()
        )

    @staticmethod
    def upsert_profile(db: Session, doctor_id: str, **profile_data) -> DoctorProfile:
        """Create the profile or overwrite every field of the existing one"""
        profile = db.query(DoctorProfile).filter(DoctorProfile.doctor_id == doctor_id).first()
        if profile is None:
            profile = DoctorProfile(doctor_id=doctor_id, **profile_data)
            db.add(profile)
        else:
            for key, value in profile_data.items():
                setattr(profile, key, value)

        db.commit()
        db.refresh(profile)
        return profile

    @staticmethod
    def list_complete_profiles(
        db: Session,
        specialization: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[DoctorProfile], int]:
        """Complete profiles matching the filters, best rated first"""
        query = db.query(DoctorProfile).filter(DoctorProfile.is_profile_complete.is_(True))

        if specialization:
            query = query.filter(DoctorProfile.specialization == specialization)

        if search:
            # % and _ in the search text match literally
            escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"
            query = query.filter(
                or_(
                    DoctorProfile.full_name.ilike(pattern, escape="\\"),
                    DoctorProfile.specialization.ilike(pattern, escape="\\"),
                    DoctorProfile.clinic_address.ilike(pattern, escape="\\"),
                )
            )

        total = query.count()
        doctors = (
            query.order_by(DoctorProfile.rating.desc(), DoctorProfile.created_at.desc(), DoctorProfile.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return doctors, total
