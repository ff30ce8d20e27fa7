"""Review request repository - Database operations for review requests"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import ReviewRequest


class ReviewRequestRepository:
    """Repository for review request database operations"""

    @staticmethod
    def create(db: Session, **request_data) -> ReviewRequest:
        review_request = ReviewRequest(**request_data)
        db.add(review_request)
        db.commit()
        db.refresh(review_request)
        return review_request

    @staticmethod
    def get_by_id(db: Session, request_id: int) -> Optional[ReviewRequest]:
        return db.query(ReviewRequest).filter(ReviewRequest.id == request_id).first()

    @staticmethod
    def exists_between(db: Session, patient_id: str, doctor_id: str) -> bool:
        """Whether the patient ever sent this doctor a review request"""
        return (
            db.query(ReviewRequest.id)
            .filter(ReviewRequest.patient_id == patient_id, ReviewRequest.doctor_id == doctor_id)
            .first()
            is not None
        )

    @staticmethod
    def list_for_doctor(
        db: Session,
        doctor_id: str,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[ReviewRequest], int]:
        query = db.query(ReviewRequest).filter(ReviewRequest.doctor_id == doctor_id)
        if status:
            query = query.filter(ReviewRequest.status == status)

        total = query.count()
        requests = (
            query.order_by(ReviewRequest.submitted_on.desc(), ReviewRequest.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return requests, total

    @staticmethod
    def list_for_patient(
        db: Session, patient_id: str, status: Optional[str] = None
    ) -> list[ReviewRequest]:
        query = db.query(ReviewRequest).filter(ReviewRequest.patient_id == patient_id)
        if status:
            query = query.filter(ReviewRequest.status == status)
        return query.order_by(ReviewRequest.submitted_on.desc(), ReviewRequest.id.desc()).all()

    @staticmethod
    def count_by_status(db: Session, doctor_id: str) -> dict[str, int]:
        rows = (
            db.query(ReviewRequest.status, func.count(ReviewRequest.id))
            .filter(ReviewRequest.doctor_id == doctor_id)
            .group_by(ReviewRequest.status)
            .all()
        )
        return {status: count for status, count in rows}

    @staticmethod
    def update_status(
        db: Session,
        review_request: ReviewRequest,
        status: str,
        reviewed_on: Optional[datetime] = None,
        doctor_notes: Optional[str] = None,
    ) -> ReviewRequest:
        review_request.status = status
        if reviewed_on is not None:
            review_request.reviewed_on = reviewed_on
        if doctor_notes:
            review_request.doctor_notes = doctor_notes
        db.commit()
        db.refresh(review_request)
        return review_request
