"""
Integration tests for the review request workflow, including approval
into an appointment.
"""
from datetime import timedelta

import pytest
from conftest import (
    DOCTOR_ID,
    OTHER_DOCTOR_ID,
    OTHER_PATIENT_ID,
    PATIENT_ID,
    as_user,
    create_appointment,
    create_doctor,
    create_review_request,
)
from sqlalchemy.exc import OperationalError

from medtour.domain.appointments.repository import AppointmentRepository
from medtour.domain.scheduling import utcnow
from medtour.models import Appointment, ReviewRequest


def _request_payload(**overrides):
    payload = {
        "doctorId": DOCTOR_ID,
        "patientName": "Maria Lopez",
        "patientEmail": "Maria@Example.com",
        "condition": "Recurring chest pain after exercise",
        "message": "Symptoms started three months ago",
    }
    payload.update(overrides)
    return payload


def _in_future(**delta):
    return (utcnow() + timedelta(**delta)).isoformat()


def _before_write(monkeypatch, action):
    """Run action right after the approval checks pass, before the appointment is written"""
    original = AppointmentRepository.find_overlapping

    def find_overlapping(db, *args, **kwargs):
        action()
        return original(db, *args, **kwargs)

    monkeypatch.setattr(AppointmentRepository, "find_overlapping", staticmethod(find_overlapping))


class TestReviewRequestCreate:
    endpoint = "/api/review-requests/create"

    def test_create_request(self, client, db):
        create_doctor(db)

        response = client.post(self.endpoint, json=_request_payload(), headers=as_user(PATIENT_ID))

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Review request submitted successfully"
        request = body["request"]
        assert request["status"] == "pending"
        assert request["patientId"] == PATIENT_ID
        assert request["doctorId"] == DOCTOR_ID
        assert request["patientEmail"] == "maria@example.com"
        assert request["appointmentId"] is None

    def test_doctor_must_have_complete_profile(self, client, db):
        create_doctor(db, complete=False)

        response = client.post(self.endpoint, json=_request_payload(), headers=as_user(PATIENT_ID))

        assert response.status_code == 404
        assert db.query(ReviewRequest).count() == 0

    def test_unknown_doctor(self, client):
        response = client.post(self.endpoint, json=_request_payload(), headers=as_user(PATIENT_ID))
        assert response.status_code == 404

    def test_cannot_address_yourself(self, client, db):
        create_doctor(db)

        response = client.post(self.endpoint, json=_request_payload(), headers=as_user(DOCTOR_ID))

        assert response.status_code == 400

    def test_message_length_limit(self, client, db):
        create_doctor(db)

        response = client.post(
            self.endpoint, json=_request_payload(message="x" * 501), headers=as_user(PATIENT_ID)
        )

        assert response.status_code == 400

    def test_text_is_stored_as_entered(self, client, db):
        create_doctor(db)

        response = client.post(
            self.endpoint,
            json=_request_payload(condition="&" * 500, patientName="Seán O'Brien"),
            headers=as_user(PATIENT_ID),
        )

        assert response.status_code == 201
        assert response.json()["request"]["patientName"] == "Seán O'Brien"
        stored = db.query(ReviewRequest).one()
        assert stored.condition == "&" * 500

    @pytest.mark.parametrize("missing", ["doctorId", "patientName", "patientEmail", "condition"])
    def test_required_fields(self, client, db, missing):
        create_doctor(db)
        payload = _request_payload()
        del payload[missing]

        response = client.post(self.endpoint, json=payload, headers=as_user(PATIENT_ID))

        assert response.status_code == 400


class TestReviewRequestListing:
    def test_doctor_list_defaults_to_pending(self, client, db):
        create_review_request(db)
        create_review_request(db, patient_id=OTHER_PATIENT_ID)
        create_review_request(db, status="rejected")

        response = client.get(f"/api/review-requests/doctor/{DOCTOR_ID}", headers=as_user(DOCTOR_ID))

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert body["pendingCount"] == 2
        assert {r["status"] for r in body["requests"]} == {"pending"}

    def test_doctor_list_all_statuses(self, client, db):
        create_review_request(db)
        create_review_request(db, status="rejected")

        response = client.get(
            f"/api/review-requests/doctor/{DOCTOR_ID}",
            params={"status": "all"},
            headers=as_user(DOCTOR_ID),
        )

        body = response.json()
        assert body["total"] == 2
        assert body["pendingCount"] == 1

    def test_doctor_list_invalid_status(self, client):
        response = client.get(
            f"/api/review-requests/doctor/{DOCTOR_ID}",
            params={"status": "archived"},
            headers=as_user(DOCTOR_ID),
        )
        assert response.status_code == 400

    def test_doctor_list_pagination(self, client, db):
        for _ in range(3):
            create_review_request(db)

        response = client.get(
            f"/api/review-requests/doctor/{DOCTOR_ID}",
            params={"page": 2, "limit": 2},
            headers=as_user(DOCTOR_ID),
        )

        body = response.json()
        assert body["totalPages"] == 2
        assert body["currentPage"] == 2
        assert len(body["requests"]) == 1

    def test_doctor_list_other_doctor_denied(self, client):
        response = client.get(f"/api/review-requests/doctor/{DOCTOR_ID}", headers=as_user(OTHER_DOCTOR_ID))
        assert response.status_code == 403

    def test_patient_list(self, client, db):
        create_review_request(db)
        create_review_request(db, patient_id=OTHER_PATIENT_ID)

        response = client.get(f"/api/review-requests/patient/{PATIENT_ID}", headers=as_user(PATIENT_ID))

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["requests"][0]["patientId"] == PATIENT_ID

    def test_patient_list_owner_only(self, client):
        response = client.get(f"/api/review-requests/patient/{PATIENT_ID}", headers=as_user(DOCTOR_ID))
        assert response.status_code == 403

    def test_stats(self, client, db):
        create_review_request(db)
        create_review_request(db)
        create_review_request(db, status="reviewed")
        create_review_request(db, status="rejected")
        create_review_request(db, doctor_id=OTHER_DOCTOR_ID)

        response = client.get(f"/api/review-requests/stats/{DOCTOR_ID}", headers=as_user(DOCTOR_ID))

        assert response.json() == {
            "pending": 2,
            "reviewed": 1,
            "approved": 0,
            "rejected": 1,
            "total": 4,
        }

    def test_stats_owner_only(self, client):
        response = client.get(f"/api/review-requests/stats/{DOCTOR_ID}", headers=as_user(PATIENT_ID))
        assert response.status_code == 403


class TestReviewRequestGet:
    def test_participants_can_read(self, client, db):
        review_request = create_review_request(db)

        for user_id in (DOCTOR_ID, PATIENT_ID):
            response = client.get(f"/api/review-requests/{review_request.id}", headers=as_user(user_id))
            assert response.status_code == 200
            assert response.json()["id"] == review_request.id

    def test_outsider_denied(self, client, db):
        review_request = create_review_request(db)

        response = client.get(f"/api/review-requests/{review_request.id}", headers=as_user(OTHER_PATIENT_ID))

        assert response.status_code == 403

    def test_not_found(self, client):
        response = client.get("/api/review-requests/999", headers=as_user(DOCTOR_ID))
        assert response.status_code == 404


class TestReviewRequestStatus:
    def _patch(self, client, request_id, user_id=DOCTOR_ID, **body):
        return client.patch(
            f"/api/review-requests/{request_id}/status", json=body, headers=as_user(user_id)
        )

    def test_mark_reviewed_with_notes(self, client, db):
        review_request = create_review_request(db)

        response = self._patch(client, review_request.id, status="reviewed", doctorNotes="Need ECG")

        assert response.status_code == 200
        body = response.json()
        assert body["request"]["status"] == "reviewed"
        assert body["request"]["doctorNotes"] == "Need ECG"
        assert body["request"]["reviewedOn"] is not None
        assert body["appointment"] is None

    def test_reject(self, client, db):
        review_request = create_review_request(db, status="reviewed")

        response = self._patch(client, review_request.id, status="rejected")

        assert response.status_code == 200
        assert response.json()["request"]["status"] == "rejected"

    def test_rejected_is_terminal(self, client, db):
        review_request = create_review_request(db, status="rejected")

        response = self._patch(client, review_request.id, status="reviewed")

        assert response.status_code == 400

    def test_reviewed_cannot_go_back_to_pending(self, client, db):
        review_request = create_review_request(db, status="reviewed")

        response = self._patch(client, review_request.id, status="pending")

        assert response.status_code == 400

    def test_same_status_only_updates_notes(self, client, db):
        review_request = create_review_request(db, status="reviewed")

        response = self._patch(client, review_request.id, status="reviewed", doctorNotes="Follow up")

        assert response.status_code == 200
        assert response.json()["request"]["doctorNotes"] == "Follow up"

    def test_unknown_status(self, client, db):
        review_request = create_review_request(db)

        response = self._patch(client, review_request.id, status="archived")

        assert response.status_code == 400

    def test_other_doctor_denied(self, client, db):
        create_doctor(db, doctor_id=OTHER_DOCTOR_ID)
        review_request = create_review_request(db)

        for status in ("reviewed", "rejected"):
            response = self._patch(client, review_request.id, user_id=OTHER_DOCTOR_ID, status=status)
            assert response.status_code == 403

        response = self._patch(
            client,
            review_request.id,
            user_id=OTHER_DOCTOR_ID,
            status="approved",
            scheduledDate=_in_future(days=1),
        )
        assert response.status_code == 403

    def test_other_doctor_denied_before_approval_input_is_checked(self, client, db, daily):
        review_request = create_review_request(db)

        response = self._patch(client, review_request.id, user_id=OTHER_DOCTOR_ID, status="approved")

        assert response.status_code == 403
        assert daily.created == []

    def test_patient_cannot_change_status(self, client, db):
        review_request = create_review_request(db)

        response = self._patch(client, review_request.id, user_id=PATIENT_ID, status="reviewed")

        assert response.status_code == 403

    def test_not_found(self, client):
        response = self._patch(client, 999, status="reviewed")
        assert response.status_code == 404


class TestReviewRequestApproval:
    def _approve(self, client, request_id, **body):
        body.setdefault("status", "approved")
        return client.patch(
            f"/api/review-requests/{request_id}/status", json=body, headers=as_user(DOCTOR_ID)
        )

    def test_approval_books_appointment(self, client, db, daily):
        create_doctor(db)
        review_request = create_review_request(db)

        response = self._approve(
            client, review_request.id, scheduledDate=_in_future(days=2), duration=45, doctorNotes="See you"
        )

        assert response.status_code == 200
        body = response.json()
        assert body["request"]["status"] == "approved"
        assert body["request"]["doctorNotes"] == "See you"
        appointment = body["appointment"]
        assert appointment["status"] == "scheduled"
        assert appointment["duration"] == 45
        assert appointment["doctorName"] == "Dr. Asha Rao"
        assert appointment["consultationFee"] == 80.0
        assert body["request"]["appointmentId"] == appointment["id"]

        assert len(daily.created) == 1
        assert daily.created[0]["name"].startswith(f"medtour-{appointment['publicId']}")
        stored = db.query(Appointment).one()
        assert stored.daily_room_name == daily.created[0]["name"]

    def test_approval_requires_scheduled_date(self, client, db, daily):
        create_doctor(db)
        review_request = create_review_request(db)

        response = self._approve(client, review_request.id)

        assert response.status_code == 400
        assert daily.created == []

    def test_second_approval_conflicts(self, client, db, daily):
        create_doctor(db)
        review_request = create_review_request(db)
        first = self._approve(client, review_request.id, scheduledDate=_in_future(days=1))
        assert first.status_code == 200

        second = self._approve(client, review_request.id, scheduledDate=_in_future(days=2))

        assert second.status_code == 409
        assert db.query(Appointment).count() == 1
        assert len(daily.created) == 1

    def test_rejected_request_cannot_be_approved(self, client, db):
        create_doctor(db)
        review_request = create_review_request(db, status="rejected")

        response = self._approve(client, review_request.id, scheduledDate=_in_future(days=1))

        assert response.status_code == 409

    def test_room_failure_writes_nothing(self, client, db, daily):
        create_doctor(db)
        review_request = create_review_request(db)
        daily.fail_create = True

        response = self._approve(client, review_request.id, scheduledDate=_in_future(days=1))

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to create video call room"
        assert db.query(Appointment).count() == 0
        db.expire_all()
        assert db.query(ReviewRequest).one().status == "pending"

    def test_double_booking_conflicts(self, client, db, daily):
        create_doctor(db)
        existing = create_appointment(db, starts_in=timedelta(days=1), duration=60)
        review_request = create_review_request(db, patient_id=OTHER_PATIENT_ID)

        clash = (existing.scheduled_date + timedelta(minutes=30)).isoformat()
        response = self._approve(client, review_request.id, scheduledDate=clash)

        assert response.status_code == 409
        assert daily.created == []

    def test_back_to_back_is_not_double_booking(self, client, db):
        create_doctor(db)
        existing = create_appointment(db, starts_in=timedelta(days=1), duration=30)
        review_request = create_review_request(db, patient_id=OTHER_PATIENT_ID)

        right_after = (existing.scheduled_date + timedelta(minutes=30)).isoformat()
        response = self._approve(client, review_request.id, scheduledDate=right_after)

        assert response.status_code == 200

    def test_missing_doctor_profile(self, client, db):
        review_request = create_review_request(db)

        response = self._approve(client, review_request.id, scheduledDate=_in_future(days=1))

        assert response.status_code == 404

    def test_offset_datetimes_are_stored_as_utc(self, client, db):
        create_doctor(db)
        review_request = create_review_request(db)

        response = self._approve(client, review_request.id, scheduledDate="2030-01-15T10:00:00+02:00")

        assert response.status_code == 200
        assert db.query(Appointment).one().scheduled_date.isoformat() == "2030-01-15T08:00:00"

    def test_room_is_deleted_when_request_was_approved_meanwhile(self, client, db, daily, monkeypatch):
        create_doctor(db)
        review_request = create_review_request(db)

        def approve_elsewhere():
            db.query(ReviewRequest).filter(ReviewRequest.id == review_request.id).update({"status": "approved"})
            db.commit()

        _before_write(monkeypatch, approve_elsewhere)

        response = self._approve(client, review_request.id, scheduledDate=_in_future(days=1))

        assert response.status_code == 409
        assert db.query(Appointment).count() == 0
        assert daily.deleted == [daily.created[0]["name"]]

    def test_room_is_deleted_when_appointment_already_exists(self, client, db, daily, monkeypatch):
        create_doctor(db)
        review_request = create_review_request(db)

        def book_elsewhere():
            db.add(
                Appointment(
                    review_request_id=review_request.id,
                    doctor_id=DOCTOR_ID,
                    patient_id=PATIENT_ID,
                    patient_name="Maria Lopez",
                    doctor_name="Dr. Asha Rao",
                    scheduled_date=utcnow() + timedelta(days=5),
                    duration=30,
                    status="scheduled",
                    daily_room_url="https://medtour.daily.co/other",
                    daily_room_name="other",
                    consultation_fee=80.0,
                )
            )
            db.commit()

        _before_write(monkeypatch, book_elsewhere)

        response = self._approve(client, review_request.id, scheduledDate=_in_future(days=1))

        assert response.status_code == 409
        assert [a.daily_room_name for a in db.query(Appointment).all()] == ["other"]
        db.expire_all()
        assert db.query(ReviewRequest).one().status == "pending"
        assert daily.deleted == [daily.created[0]["name"]]

    def test_room_is_deleted_when_database_write_fails(self, client, db, daily, monkeypatch):
        create_doctor(db)
        review_request = create_review_request(db)

        def broken_write(*args, **kwargs):
            raise OperationalError("INSERT INTO appointments", {}, Exception("disk I/O error"))

        monkeypatch.setattr(AppointmentRepository, "create_for_request", staticmethod(broken_write))

        response = self._approve(client, review_request.id, scheduledDate=_in_future(days=1))

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to create appointment"
        assert db.query(Appointment).count() == 0
        db.expire_all()
        assert db.query(ReviewRequest).one().status == "pending"
        assert daily.deleted == [daily.created[0]["name"]]
