from datetime import timedelta, timezone

import pytest

from clinic_booking.core.locks import doctor_key

from .conftest import at


def shifted_zone(hours: int):
    """A fixed offset that differs from local time by the given hours."""
    local_offset = at(9).astimezone().utcoffset()
    return timezone(local_offset + timedelta(hours=hours))


def appointment_payload(seed, start, **overrides):
    payload = {
        "appointmentDateTime": start.isoformat(),
        "category": "Checkup",
        "patientId": seed.patient_id,
        "doctorId": seed.doctor_id,
        "clinicId": seed.clinic_id,
        "durationInMinutes": 30,
    }
    payload.update(overrides)
    return payload


class TestAppointmentsAPI:

    def test_create_appointment(self, client, seed):
        """Test booking an appointment."""
        response = client.post("/api/v1/appointments", json=appointment_payload(seed, at(9)))
        assert response.status_code == 201

        data = response.json()
        assert data["appointmentDateTime"] == "2030-01-08T09:00:00"
        assert data["durationInMinutes"] == 30
        assert data["patientName"] == "Jane Doe"
        assert data["doctorName"] == "John Smith"
        assert data["clinicName"] == "Star Clinic"

    def test_create_accepts_snake_case(self, client, seed):
        payload = {
            "appointment_date_time": at(9).isoformat(),
            "category": "Checkup",
            "patient_id": seed.patient_id,
            "doctor_id": seed.doctor_id,
            "clinic_id": seed.clinic_id,
            "duration_in_minutes": 30,
        }
        response = client.post("/api/v1/appointments", json=payload)
        assert response.status_code == 201

    def test_doctor_conflict(self, client, seed):
        """Test overlapping booking for the same doctor."""
        client.post("/api/v1/appointments", json=appointment_payload(seed, at(9)))
        response = client.post(
            "/api/v1/appointments",
            json=appointment_payload(seed, at(9, 15), patientId=seed.other_patient_id)
        )
        assert response.status_code == 409

        data = response.json()
        assert data["error"] == "conflict_error"
        assert data["scope"] == "doctor"
        assert data["retryable"] is False

    def test_back_to_back(self, client, seed):
        first = client.post("/api/v1/appointments", json=appointment_payload(seed, at(9)))
        second = client.post(
            "/api/v1/appointments",
            json=appointment_payload(seed, at(9, 30), patientId=seed.other_patient_id)
        )
        assert first.status_code == 201
        assert second.status_code == 201

    @pytest.mark.parametrize("overrides, kind", [
        ({"category": ""}, "validation_error"),
        ({"durationInMinutes": 0}, "validation_error"),
        ({"doctorId": 999}, "referential_error"),
        ({"appointmentDateTime": "2030-01-08T07:59:00"}, "temporal_policy_error"),
        ({"appointmentDateTime": "2029-12-31T09:00:00"}, "temporal_policy_error"),
        ({"durationInMinutes": 10 ** 12}, "validation_error"),
        ({"category": "x" * 101}, "validation_error"),
    ])
    def test_rejections(self, client, seed, overrides, kind):
        response = client.post("/api/v1/appointments", json=appointment_payload(seed, at(9), **overrides))
        assert response.status_code == 400
        assert response.json()["error"] == kind

    def test_offset_timestamp_is_converted_to_local_time(self, client, seed):
        start = at(9).astimezone(shifted_zone(5))
        response = client.post(
            "/api/v1/appointments", json=appointment_payload(seed, at(9), appointmentDateTime=start.isoformat())
        )
        assert response.status_code == 201
        assert response.json()["appointmentDateTime"] == "2030-01-08T09:00:00"

    def test_utc_timestamp_is_converted_to_local_time(self, client, seed):
        start = at(9).astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        response = client.post(
            "/api/v1/appointments", json=appointment_payload(seed, at(9), appointmentDateTime=start)
        )
        assert response.status_code == 201
        assert response.json()["appointmentDateTime"] == "2030-01-08T09:00:00"

    def test_business_hours_apply_to_converted_time(self, client, seed):
        """07:30 local reads 12:30 in the shifted zone and must still be rejected."""
        start = at(7, 30).astimezone(shifted_zone(5))
        assert start.hour == 12
        response = client.post(
            "/api/v1/appointments", json=appointment_payload(seed, at(9), appointmentDateTime=start.isoformat())
        )
        assert response.status_code == 400
        assert response.json()["error"] == "temporal_policy_error"

    def test_past_check_applies_to_converted_time(self, client, seed):
        """06:00 local on the current day reads 11:00 in the shifted zone and is in the past."""
        start = at(6, day=at(9) - timedelta(days=1)).astimezone(shifted_zone(5))
        response = client.post(
            "/api/v1/appointments", json=appointment_payload(seed, at(9), appointmentDateTime=start.isoformat())
        )
        assert response.status_code == 400
        assert response.json()["message"] == "You cannot book an appointment in the past."

    def test_missing_field_is_unprocessable(self, client, seed):
        payload = appointment_payload(seed, at(9))
        del payload["doctorId"]
        response = client.post("/api/v1/appointments", json=payload)
        assert response.status_code == 422

    def test_get_and_list(self, client, seed):
        created = client.post("/api/v1/appointments", json=appointment_payload(seed, at(9))).json()

        response = client.get(f"/api/v1/appointments/{created['id']}")
        assert response.status_code == 200
        assert response.json() == created

        response = client.get("/api/v1/appointments")
        assert response.status_code == 200
        assert [a["id"] for a in response.json()] == [created["id"]]

    def test_empty_list(self, client, seed):
        response = client.get("/api/v1/appointments")
        assert response.status_code == 200
        assert response.json() == []

    def test_get_unknown(self, client, seed):
        response = client.get("/api/v1/appointments/999")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_update_appointment(self, client, seed):
        """Test updating an appointment in place."""
        created = client.post("/api/v1/appointments", json=appointment_payload(seed, at(9))).json()

        response = client.put(
            f"/api/v1/appointments/{created['id']}",
            json=appointment_payload(seed, at(9), category="Follow-up")
        )
        assert response.status_code == 200

        data = response.json()
        assert data["message"] == "Appointment updated successfully."
        assert data["appointment"]["category"] == "Follow-up"

    def test_update_unknown(self, client, seed):
        response = client.put("/api/v1/appointments/999", json=appointment_payload(seed, at(9)))
        assert response.status_code == 404

    def test_delete_appointment(self, client, seed):
        created = client.post("/api/v1/appointments", json=appointment_payload(seed, at(9))).json()

        response = client.delete(f"/api/v1/appointments/{created['id']}")
        assert response.status_code == 200
        assert response.json()["message"] == "Appointment deleted successfully."

        response = client.delete(f"/api/v1/appointments/{created['id']}")
        assert response.status_code == 404

    def test_create_with_patient(self, client, seed):
        """Test booking for a patient that is registered on the fly."""
        payload = {
            "patient": {
                "firstName": "Jane",
                "lastName": "Roe",
                "email": "jane.roe@example.com",
                "birthDate": "1992-08-15",
                "gender": "Female",
            },
            "appointment": {
                "appointmentDateTime": at(14).isoformat(),
                "category": "Checkup",
                "doctorId": seed.doctor_id,
                "clinicId": seed.clinic_id,
                "durationInMinutes": 30,
            },
        }
        first = client.post("/api/v1/appointments/with-patient", json=payload)
        assert first.status_code == 201
        assert first.json()["patientName"] == "Jane Roe"

        payload["appointment"]["appointmentDateTime"] = at(15).isoformat()
        second = client.post("/api/v1/appointments/with-patient", json=payload)
        assert second.status_code == 201

        patients = client.get("/api/v1/patients").json()
        assert len([p for p in patients if p["email"] == "jane.roe@example.com"]) == 1

    def test_lock_timeout_is_transient(self, client, seed, redis_mock, service):
        service.timeout = 0.1
        held = redis_mock.lock(f"booking-lock:{doctor_key(seed.doctor_id)}")
        assert held.acquire()
        try:
            response = client.post("/api/v1/appointments", json=appointment_payload(seed, at(9)))
        finally:
            held.release()

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
        assert response.json()["retryable"] is True


class TestServiceEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_unknown_route(self, client):
        response = client.get("/api/v1/nowhere")
        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"
