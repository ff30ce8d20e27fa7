"""
Integration tests for appointment endpoints: creation from a review
request, doctor dashboards, the join gate and status updates.
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

from medtour.domain.scheduling import utcnow
from medtour.models import Appointment, ReviewRequest


class TestAppointmentCreateFromRequest:
    endpoint = "/api/appointments/create-from-request"

    def test_create(self, client, db, daily):
        create_doctor(db)
        review_request = create_review_request(db)
        scheduled = (utcnow() + timedelta(days=1)).replace(microsecond=0)

        response = client.post(
            self.endpoint,
            json={"reviewRequestId": review_request.id, "scheduledDate": scheduled.isoformat()},
            headers=as_user(DOCTOR_ID),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Appointment created successfully"
        assert body["appointment"]["duration"] == 30
        assert body["appointment"]["patientId"] == PATIENT_ID
        assert body["appointment"]["paymentStatus"] == "pending"

        db.expire_all()
        assert db.query(ReviewRequest).one().status == "approved"
        assert daily.created[0]["scheduled_date"] == scheduled
        assert daily.created[0]["duration"] == 30

    def test_duration_bounds(self, client, db):
        create_doctor(db)
        review_request = create_review_request(db)

        response = client.post(
            self.endpoint,
            json={
                "reviewRequestId": review_request.id,
                "scheduledDate": (utcnow() + timedelta(days=1)).isoformat(),
                "duration": 0,
            },
            headers=as_user(DOCTOR_ID),
        )

        assert response.status_code == 400

    def test_only_the_requests_doctor(self, client, db, daily):
        create_doctor(db, doctor_id=OTHER_DOCTOR_ID)
        review_request = create_review_request(db)

        response = client.post(
            self.endpoint,
            json={
                "reviewRequestId": review_request.id,
                "scheduledDate": (utcnow() + timedelta(days=1)).isoformat(),
            },
            headers=as_user(OTHER_DOCTOR_ID),
        )

        assert response.status_code == 403
        assert daily.created == []

    def test_unknown_request(self, client, db):
        create_doctor(db)

        response = client.post(
            self.endpoint,
            json={"reviewRequestId": 999, "scheduledDate": (utcnow() + timedelta(days=1)).isoformat()},
            headers=as_user(DOCTOR_ID),
        )

        assert response.status_code == 404


class TestDoctorAppointments:
    def test_list_sorted_by_date(self, client, db):
        later = create_appointment(db, starts_in=timedelta(days=3))
        sooner = create_appointment(db, starts_in=timedelta(days=1))
        create_appointment(db, doctor_id=OTHER_DOCTOR_ID)

        response = client.get(f"/api/appointments/doctor/{DOCTOR_ID}", headers=as_user(DOCTOR_ID))

        assert response.status_code == 200
        body = response.json()
        assert [a["id"] for a in body["appointments"]] == [sooner.id, later.id]
        assert body["total"] == 2
        assert body["totalPages"] == 1

    def test_filter_by_status_and_date(self, client, db):
        target = create_appointment(db, starts_in=timedelta(days=2))
        create_appointment(db, starts_in=timedelta(days=2, hours=1), status="cancelled")
        create_appointment(db, starts_in=timedelta(days=5))

        response = client.get(
            f"/api/appointments/doctor/{DOCTOR_ID}",
            params={"status": "scheduled", "date": target.scheduled_date.date().isoformat()},
            headers=as_user(DOCTOR_ID),
        )

        ids = [a["id"] for a in response.json()["appointments"]]
        assert target.id in ids
        assert len(ids) == 1

    def test_invalid_status_filter(self, client):
        response = client.get(
            f"/api/appointments/doctor/{DOCTOR_ID}",
            params={"status": "postponed"},
            headers=as_user(DOCTOR_ID),
        )
        assert response.status_code == 400

    def test_other_user_denied(self, client):
        response = client.get(f"/api/appointments/doctor/{DOCTOR_ID}", headers=as_user(PATIENT_ID))
        assert response.status_code == 403

    def test_upcoming(self, client, db):
        open_now = create_appointment(db, starts_in=timedelta(minutes=5))
        started = create_appointment(db, starts_in=timedelta(minutes=-10), status="in-progress")
        tomorrow = create_appointment(db, starts_in=timedelta(days=1))
        create_appointment(db, starts_in=timedelta(days=8))
        create_appointment(db, starts_in=timedelta(minutes=-45), duration=30)
        create_appointment(db, starts_in=timedelta(hours=2), status="cancelled")

        response = client.get(f"/api/appointments/doctor/{DOCTOR_ID}/upcoming", headers=as_user(DOCTOR_ID))

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 3
        assert [(a["id"], a["canJoin"]) for a in body["appointments"]] == [
            (started.id, True),
            (open_now.id, True),
            (tomorrow.id, False),
        ]

    def test_upcoming_is_capped(self, client, db):
        for hours in range(1, 13):
            create_appointment(db, starts_in=timedelta(hours=hours))

        response = client.get(f"/api/appointments/doctor/{DOCTOR_ID}/upcoming", headers=as_user(DOCTOR_ID))

        assert response.json()["total"] == 10

    def test_stats(self, client, db):
        create_appointment(db, status="scheduled")
        create_appointment(db, status="in-progress")
        create_appointment(db, status="completed")
        create_appointment(db, status="completed")
        create_appointment(db, status="cancelled")
        create_appointment(db, status="no-show")

        response = client.get(f"/api/appointments/doctor/{DOCTOR_ID}/stats", headers=as_user(DOCTOR_ID))

        assert response.json() == {"total": 4, "completed": 2, "scheduled": 1, "cancelled": 1}

    def test_patients_count(self, client, db):
        create_appointment(db)
        create_appointment(db)
        create_appointment(db, patient_id=OTHER_PATIENT_ID)

        response = client.get(
            f"/api/appointments/doctor/{DOCTOR_ID}/patients-count", headers=as_user(DOCTOR_ID)
        )

        assert response.json() == {"uniquePatients": 2}

    def test_patients_summary(self, client, db):
        create_appointment(db, starts_in=timedelta(days=-3), status="completed")
        create_appointment(db, starts_in=timedelta(days=1))
        create_appointment(db, starts_in=timedelta(days=4), patient_id=OTHER_PATIENT_ID, patient_name="Ken Ito")

        response = client.get(f"/api/appointments/doctor/{DOCTOR_ID}/patients", headers=as_user(DOCTOR_ID))

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        first, second = body["patients"]
        assert first["patientId"] == OTHER_PATIENT_ID
        assert first["patientName"] == "Ken Ito"
        assert first["totalAppointments"] == 1
        assert second["patientId"] == PATIENT_ID
        assert second["totalAppointments"] == 2
        assert second["appointmentStatuses"] == ["completed", "scheduled"]

    @pytest.mark.parametrize("suffix", ["/upcoming", "/stats", "/patients-count", "/patients"])
    def test_dashboards_are_doctor_only(self, client, suffix):
        response = client.get(f"/api/appointments/doctor/{DOCTOR_ID}{suffix}", headers=as_user(OTHER_DOCTOR_ID))
        assert response.status_code == 403


class TestAppointmentGet:
    def test_participants(self, client, db):
        appointment = create_appointment(db)

        for user_id in (DOCTOR_ID, PATIENT_ID):
            response = client.get(f"/api/appointments/{appointment.id}", headers=as_user(user_id))
            assert response.status_code == 200

    def test_outsider(self, client, db):
        appointment = create_appointment(db)

        response = client.get(f"/api/appointments/{appointment.id}", headers=as_user(OTHER_PATIENT_ID))

        assert response.status_code == 403

    def test_not_found(self, client):
        response = client.get("/api/appointments/999", headers=as_user(DOCTOR_ID))
        assert response.status_code == 404


class TestJoinCall:
    def _join(self, client, appointment_id, user_id=PATIENT_ID):
        return client.get(f"/api/appointments/{appointment_id}/join", headers=as_user(user_id))

    def test_join_inside_window_starts_call(self, client, db):
        appointment = create_appointment(db, starts_in=timedelta(minutes=10))

        response = self._join(client, appointment.id)

        assert response.status_code == 200
        body = response.json()
        assert body["roomUrl"] == "https://medtour.daily.co/room-1"
        assert body["roomName"] == "room-1"
        assert body["appointment"]["status"] == "in-progress"

    def test_second_participant_can_join(self, client, db):
        appointment = create_appointment(db, starts_in=timedelta(minutes=-5))

        assert self._join(client, appointment.id, PATIENT_ID).status_code == 200
        response = self._join(client, appointment.id, DOCTOR_ID)

        assert response.status_code == 200
        assert response.json()["appointment"]["status"] == "in-progress"

    def test_too_early(self, client, db):
        appointment = create_appointment(db, starts_in=timedelta(minutes=20))

        response = self._join(client, appointment.id)

        assert response.status_code == 400
        assert response.json()["detail"] == (
            "Call room is not yet available. Please join 15 minutes before scheduled time."
        )
        db.expire_all()
        assert db.get(Appointment, appointment.id).status == "scheduled"

    def test_ended(self, client, db):
        appointment = create_appointment(db, starts_in=timedelta(minutes=-40), duration=30)

        response = self._join(client, appointment.id)

        assert response.status_code == 400
        assert response.json()["detail"] == "This appointment has ended."

    @pytest.mark.parametrize("status", ["completed", "cancelled", "no-show"])
    def test_closed_appointments_cannot_be_joined(self, client, db, status):
        appointment = create_appointment(db, starts_in=timedelta(minutes=5), status=status)

        response = self._join(client, appointment.id)

        assert response.status_code == 400

    def test_outsider_cannot_join(self, client, db):
        appointment = create_appointment(db, starts_in=timedelta(minutes=5))

        response = self._join(client, appointment.id, OTHER_PATIENT_ID)

        assert response.status_code == 403


class TestAppointmentStatus:
    def _patch(self, client, appointment_id, user_id=DOCTOR_ID, **body):
        return client.patch(
            f"/api/appointments/{appointment_id}/status", json=body, headers=as_user(user_id)
        )

    def test_complete_with_notes(self, client, db):
        appointment = create_appointment(db, status="in-progress")

        response = self._patch(client, appointment.id, status="completed", meetingNotes="Prescribed rest")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Appointment updated successfully"
        assert body["appointment"]["status"] == "completed"
        assert body["appointment"]["meetingNotes"] == "Prescribed rest"

    def test_terminal_state_is_final(self, client, db):
        appointment = create_appointment(db, status="completed")

        response = self._patch(client, appointment.id, status="scheduled")

        assert response.status_code == 400

    def test_in_progress_cannot_be_no_show(self, client, db):
        appointment = create_appointment(db, status="in-progress")

        response = self._patch(client, appointment.id, status="no-show")

        assert response.status_code == 400

    def test_same_status_updates_notes(self, client, db):
        appointment = create_appointment(db, status="completed")

        response = self._patch(client, appointment.id, status="completed", meetingNotes="Addendum")

        assert response.status_code == 200
        assert response.json()["appointment"]["meetingNotes"] == "Addendum"

    def test_unknown_status(self, client, db):
        appointment = create_appointment(db)

        response = self._patch(client, appointment.id, status="postponed")

        assert response.status_code == 400

    def test_patient_cannot_update(self, client, db):
        appointment = create_appointment(db)

        response = self._patch(client, appointment.id, user_id=PATIENT_ID, status="cancelled")

        assert response.status_code == 403

    def test_other_doctor_cannot_update(self, client, db):
        appointment = create_appointment(db)

        response = self._patch(client, appointment.id, user_id=OTHER_DOCTOR_ID, status="cancelled")

        assert response.status_code == 403
