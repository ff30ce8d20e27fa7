"""
Shared fixtures: a throwaway SQLite database and upload directory, a
header-driven fake identity and an in-memory video room provider.
"""
import os
import shutil
import tempfile
from datetime import timedelta
from typing import Optional

_TMP_DIR = tempfile.mkdtemp(prefix="medtour-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.setdefault("ENVIRONMENT", "test")

import pytest  # noqa: E402
from fastapi import Header, HTTPException  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from medtour.auth import CurrentUser, get_current_user  # noqa: E402
from medtour.database import Base, SessionLocal, engine  # noqa: E402
from medtour.domain.scheduling import utcnow  # noqa: E402
from medtour.main import app  # noqa: E402
from medtour.models import Appointment, DoctorProfile, ReviewRequest  # noqa: E402
from medtour.services.daily_service import DailyRoom, DailyServiceError, get_daily_service  # noqa: E402

UPLOAD_DIR = os.environ["UPLOAD_DIR"]

DOCTOR_ID = "user_doctor_1"
OTHER_DOCTOR_ID = "user_doctor_2"
PATIENT_ID = "user_patient_1"
OTHER_PATIENT_ID = "user_patient_2"


def as_user(user_id: str) -> dict:
    return {"X-Test-User": user_id}


class FakeDailyService:
    """Records room calls instead of talking to Daily.co"""

    def __init__(self):
        self.created = []
        self.deleted = []
        self.fail_create = False

    async def create_room(self, reference, scheduled_date, duration):
        if self.fail_create:
            raise DailyServiceError("Daily.co API error: 500 - unavailable")
        name = f"medtour-{reference}-{len(self.created) + 1}"
        self.created.append({"name": name, "scheduled_date": scheduled_date, "duration": duration})
        return DailyRoom(url=f"https://medtour.daily.co/{name}", name=name)

    async def delete_room(self, room_name):
        self.deleted.append(room_name)


def fake_current_user(x_test_user: Optional[str] = Header(None)) -> CurrentUser:
    if not x_test_user:
        raise HTTPException(status_code=401, detail="Authorization header missing")
    return CurrentUser(id=x_test_user)


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    shutil.rmtree(UPLOAD_DIR, ignore_errors=True)
    yield


@pytest.fixture
def daily():
    return FakeDailyService()


@pytest.fixture
def client(daily):
    app.dependency_overrides[get_current_user] = fake_current_user
    app.dependency_overrides[get_daily_service] = lambda: daily
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def create_doctor(db, doctor_id=DOCTOR_ID, full_name="Dr. Asha Rao", complete=True, **overrides):
    data = {
        "doctor_id": doctor_id,
        "full_name": full_name,
        "specialization": "Cardiology",
        "qualification": "MD",
        "experience": 12,
        "consultation_fee": 80.0,
        "clinic_address": "12 Harbour Road, Chennai",
        "phone_number": "+914400000000",
        "email": f"{doctor_id}@clinic.example",
        "languages": ["English"],
        "is_profile_complete": complete,
    }
    data.update(overrides)
    profile = DoctorProfile(**data)
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def create_review_request(db, patient_id=PATIENT_ID, doctor_id=DOCTOR_ID, status="pending"):
    review_request = ReviewRequest(
        patient_id=patient_id,
        doctor_id=doctor_id,
        patient_name="Maria Lopez",
        patient_email="maria@example.com",
        condition="Recurring chest pain",
        status=status,
    )
    db.add(review_request)
    db.commit()
    db.refresh(review_request)
    return review_request


def create_appointment(
    db,
    starts_in=timedelta(days=1),
    duration=30,
    status="scheduled",
    doctor_id=DOCTOR_ID,
    patient_id=PATIENT_ID,
    patient_name="Maria Lopez",
):
    review_request = create_review_request(db, patient_id=patient_id, doctor_id=doctor_id, status="approved")
    appointment = Appointment(
        review_request_id=review_request.id,
        doctor_id=doctor_id,
        patient_id=patient_id,
        patient_name=patient_name,
        doctor_name="Dr. Asha Rao",
        scheduled_date=utcnow() + starts_in,
        duration=duration,
        status=status,
        daily_room_url="https://medtour.daily.co/room-1",
        daily_room_name="room-1",
        consultation_fee=80.0,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment
