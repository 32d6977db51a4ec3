"""Tests for appointment endpoints."""

from uuid import uuid4

import pytest
import redis
from httpx import AsyncClient

from clinic_queue.core.security import create_access_token
from clinic_queue.schemas.clinic_users import Role


@pytest.mark.asyncio
class TestAppointmentEndpoints:
    """Tests for the appointment lifecycle over HTTP."""

    async def test_create_and_run_lifecycle(
        self, client: AsyncClient, headers_for, receptionist, clinic_id, room
    ):
        """Test creating an appointment and walking it to COMPLETED."""
        headers = headers_for(receptionist, clinic_id)

        response = await client.post(
            "/api/v1/appointments",
            json={"patient_id": str(uuid4()), "room_id": str(room["id"]), "source": "PHONE"},
            headers=headers,
        )
        assert response.status_code == 201
        appointment = response.json()
        assert appointment["status"] == "SCHEDULED"
        assert appointment["source"] == "PHONE"
        assert appointment["appointment_number"] == 1
        assert appointment["checkin_time"] is None

        url = f"/api/v1/appointments/{appointment['id']}/transition"
        for status, field in (
            ("CHECKED_IN", "checkin_time"),
            ("IN_PROGRESS", "start_time"),
            ("COMPLETED", "end_time"),
        ):
            response = await client.post(url, json={"status": status}, headers=headers)
            assert response.status_code == 200
            assert response.json()["status"] == status
            assert response.json()[field] is not None

        response = await client.post(url, json={"status": "CANCELLED"}, headers=headers)
        assert response.status_code == 409
        assert response.json()["error"] == "InvalidTransitionException"

    async def test_create_requires_patient(self, client, headers_for, receptionist, clinic_id):
        """Test a missing patient is rejected."""
        response = await client.post(
            "/api/v1/appointments",
            json={"note": "no patient"},
            headers=headers_for(receptionist, clinic_id),
        )

        assert response.status_code == 422
        assert response.json()["error"] == "ValidationException"

    async def test_missing_clinic_context(self, client, headers_for, receptionist):
        """Test a request without any clinic context is forbidden."""
        response = await client.get("/api/v1/appointments", headers=headers_for(receptionist))

        assert response.status_code == 403
        assert response.json()["error"] == "MissingClinicContextException"

    async def test_malformed_clinic_header(self, client, receptionist):
        """Test a malformed clinic header is a validation error."""
        token = create_access_token(data={"sub": str(receptionist)})

        response = await client.get(
            "/api/v1/appointments",
            headers={"Authorization": f"Bearer {token}", "X-Clinic-ID": "clinic-one"},
        )

        assert response.status_code == 422

    async def test_other_clinic_denied(self, client, headers_for, receptionist, other_clinic_id):
        """Test a member of one clinic cannot act in another."""
        response = await client.get(
            "/api/v1/appointments",
            headers=headers_for(receptionist, other_clinic_id),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "ClinicAccessDeniedException"

    async def test_staff_cannot_create(self, client, headers_for, grant_role, clinic_id):
        """Test STAFF may read but not create."""
        staff = uuid4()
        await grant_role(staff, clinic_id, Role.STAFF)
        headers = headers_for(staff, clinic_id)

        list_response = await client.get("/api/v1/appointments", headers=headers)
        create_response = await client.post(
            "/api/v1/appointments", json={"patient_id": str(uuid4())}, headers=headers
        )

        assert list_response.status_code == 200
        assert create_response.status_code == 403
        assert create_response.json()["error"] == "InsufficientRoleException"

    async def test_selected_clinic_claim(self, client, receptionist, clinic_id):
        """Test the token's selected clinic is used when no header is sent."""
        token = create_access_token(data={"sub": str(receptionist)}, clinic_id=clinic_id)

        response = await client.post(
            "/api/v1/appointments",
            json={"patient_id": str(uuid4())},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 201
        assert response.json()["clinic_id"] == str(clinic_id)

    async def test_invalid_token(self, client, clinic_id):
        """Test an invalid bearer token is unauthorized."""
        response = await client.get(
            "/api/v1/appointments",
            headers={"Authorization": "Bearer invalid", "X-Clinic-ID": str(clinic_id)},
        )

        assert response.status_code == 401

    async def test_no_token(self, client, clinic_id):
        """Test requests without credentials are rejected."""
        response = await client.get("/api/v1/appointments", headers={"X-Clinic-ID": str(clinic_id)})

        assert response.status_code in (401, 403)

    async def test_get_from_other_clinic_not_found(
        self, client, headers_for, grant_role, receptionist, clinic_id, other_clinic_id
    ):
        """Test an appointment is invisible from another clinic."""
        response = await client.post(
            "/api/v1/appointments",
            json={"patient_id": str(uuid4())},
            headers=headers_for(receptionist, clinic_id),
        )
        appointment_id = response.json()["id"]
        await grant_role(receptionist, other_clinic_id, Role.RECEPTIONIST)

        own = await client.get(
            f"/api/v1/appointments/{appointment_id}", headers=headers_for(receptionist, clinic_id)
        )
        foreign = await client.get(
            f"/api/v1/appointments/{appointment_id}",
            headers=headers_for(receptionist, other_clinic_id),
        )

        assert own.status_code == 200
        assert foreign.status_code == 404
        assert foreign.json()["error"] == "NotFoundException"

    async def test_patch_rejects_status(self, client, headers_for, receptionist, clinic_id):
        """Test status cannot be changed with PATCH."""
        headers = headers_for(receptionist, clinic_id)
        created = await client.post(
            "/api/v1/appointments", json={"patient_id": str(uuid4())}, headers=headers
        )

        response = await client.patch(
            f"/api/v1/appointments/{created.json()['id']}",
            json={"status": "COMPLETED"},
            headers=headers,
        )

        assert response.status_code == 422

    async def test_patch_updates_fields(self, client, headers_for, receptionist, clinic_id, room):
        """Test updating room and note."""
        headers = headers_for(receptionist, clinic_id)
        created = await client.post(
            "/api/v1/appointments", json={"patient_id": str(uuid4())}, headers=headers
        )

        response = await client.patch(
            f"/api/v1/appointments/{created.json()['id']}",
            json={"room_id": str(room["id"]), "note": "Moved to room A"},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["room_id"] == str(room["id"])
        assert response.json()["note"] == "Moved to room A"
        assert response.json()["status"] == "SCHEDULED"

    async def test_cancel_with_reason(self, client, headers_for, receptionist, clinic_id):
        """Test cancellation appends the reason to the note."""
        headers = headers_for(receptionist, clinic_id)
        created = await client.post(
            "/api/v1/appointments",
            json={"patient_id": str(uuid4()), "note": "Follow-up"},
            headers=headers,
        )

        response = await client.post(
            f"/api/v1/appointments/{created.json()['id']}/cancel",
            json={"reason": "Rescheduled"},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"
        assert response.json()["note"] == "Follow-up\nCancellation reason: Rescheduled"

    async def test_cancel_without_body(self, client, headers_for, receptionist, clinic_id):
        """Test cancellation without a reason."""
        headers = headers_for(receptionist, clinic_id)
        created = await client.post(
            "/api/v1/appointments", json={"patient_id": str(uuid4())}, headers=headers
        )

        response = await client.post(
            f"/api/v1/appointments/{created.json()['id']}/cancel", headers=headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"

    async def test_list_filters_by_status(self, client, headers_for, receptionist, clinic_id):
        """Test listing with a status filter."""
        headers = headers_for(receptionist, clinic_id)
        first = await client.post(
            "/api/v1/appointments", json={"patient_id": str(uuid4())}, headers=headers
        )
        await client.post("/api/v1/appointments", json={"patient_id": str(uuid4())}, headers=headers)
        await client.post(
            f"/api/v1/appointments/{first.json()['id']}/transition",
            json={"status": "CHECKED_IN"},
            headers=headers,
        )

        response = await client.get(
            "/api/v1/appointments", params={"status": "CHECKED_IN"}, headers=headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == first.json()["id"]

    async def test_transition_publishes_queue(
        self, client, headers_for, receptionist, clinic_id, room, app_broadcast, mock_redis
    ):
        """Test a transition publishes the clinic queue snapshot."""
        headers = headers_for(receptionist, clinic_id)
        created = await client.post(
            "/api/v1/appointments",
            json={"patient_id": str(uuid4()), "room_id": str(room["id"])},
            headers=headers,
        )
        assert mock_redis.publish.call_count == 1

        await client.post(
            f"/api/v1/appointments/{created.json()['id']}/transition",
            json={"status": "CHECKED_IN"},
            headers=headers,
        )

        assert mock_redis.publish.call_count == 2
        topic = mock_redis.publish.call_args.args[0]
        assert topic == f"clinic/{clinic_id}/queue/updates"

    async def test_broker_outage_invisible_to_caller(
        self, client, headers_for, receptionist, clinic_id, room, app_broadcast, mock_redis
    ):
        """Test a broker failure does not affect the response."""
        mock_redis.publish.side_effect = redis.ConnectionError("down")

        response = await client.post(
            "/api/v1/appointments",
            json={"patient_id": str(uuid4()), "room_id": str(room["id"])},
            headers=headers_for(receptionist, clinic_id),
        )

        assert response.status_code == 201
