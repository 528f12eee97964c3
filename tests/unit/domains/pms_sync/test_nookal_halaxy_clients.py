"""Unit tests for NookalClient and HalaxyClient using httpx.MockTransport."""

from datetime import UTC, datetime

import httpx
import pytest

from app.domains.pms_sync.domain.exceptions import CredentialFormatError, PMSAuthError, PMSResponseError
from app.domains.pms_sync.domain.value_objects import AppointmentStatus
from app.domains.pms_sync.infrastructure.external.halaxy import HalaxyClient
from app.domains.pms_sync.infrastructure.external.nookal import NookalClient
from app.domains.pms_sync.infrastructure.external.nookal.mapper import map_appointment as map_nookal_appointment
from app.domains.pms_sync.infrastructure.external.retry import RetryPolicy

NOOKAL_URL = "https://api.nookal.com/production/v1"
HALAXY_URL = "https://api.halaxy.com/v1"


def nookal_ok(data: dict) -> httpx.Response:
    return httpx.Response(200, json={"status": "success", "data": data})


def make_nookal(handler) -> NookalClient:
    return NookalClient(
        api_key="nookal-key",
        base_url=NOOKAL_URL,
        retry_policy=RetryPolicy(base_delay=0),
        transport=httpx.MockTransport(handler),
    )


def make_halaxy(handler) -> HalaxyClient:
    return HalaxyClient(
        api_key="halaxy-token",
        base_url=HALAXY_URL,
        retry_policy=RetryPolicy(base_delay=0),
        transport=httpx.MockTransport(handler),
    )


class TestNookalClient:
    """Tests for the Nookal adapter."""

    def test_requires_key(self) -> None:
        with pytest.raises(CredentialFormatError):
            NookalClient.validate_api_key(" ")

    @pytest.mark.asyncio
    async def test_api_key_sent_as_query_param(self) -> None:
        """Should authenticate with the api_key query parameter."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return nookal_ok({"appointmentTypes": [{"ID": 4, "Name": "EPC Consult"}]})

        client = make_nookal(handler)
        try:
            types = await client.get_appointment_types()
        finally:
            await client.close()

        assert seen[0].url.params["api_key"] == "nookal-key"
        assert seen[0].url.path == "/production/v1/getAppointmentTypes"
        assert types[0].external_id == "4"

    @pytest.mark.asyncio
    async def test_failure_envelope_with_auth_message(self) -> None:
        """Should treat an HTTP 200 failure envelope about the key as an auth error."""
        client = make_nookal(
            lambda request: httpx.Response(200, json={"status": "failure", "message": "Invalid API Key"})
        )
        try:
            with pytest.raises(PMSAuthError):
                await client.get_practitioners()
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_failure_envelope_other_message(self) -> None:
        client = make_nookal(lambda request: httpx.Response(200, json={"status": "failure", "message": "Bad location"}))
        try:
            with pytest.raises(PMSResponseError):
                await client.get_practitioners()
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_patients_with_modified_since(self) -> None:
        """Should pass modified_since in Nookal's timestamp format."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return nookal_ok({"patients": [{"ID": 12, "FirstName": "Bo", "LastName": "Ray", "DOB": "1980-02-03"}]})

        client = make_nookal(handler)
        try:
            patients = await client.get_patients(datetime(2024, 5, 6, 7, 8, 9, tzinfo=UTC))
        finally:
            await client.close()

        assert len(seen) == 1
        assert seen[0].url.params["modified_since"] == "2024-05-06 07:08:09"
        assert seen[0].url.params["page"] == "1"
        assert patients[0].external_id == "12"
        assert patients[0].date_of_birth.year == 1980

    @pytest.mark.asyncio
    async def test_patient_appointments(self) -> None:
        """Should combine Date and StartTime and map the status label."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["patient_id"] == "12"
            return nookal_ok(
                {
                    "appointments": [
                        {
                            "ID": 1,
                            "Date": "2024-03-01",
                            "StartTime": "09:30:00",
                            "AppointmentTypeID": 4,
                            "Status": "Completed",
                        },
                        {
                            "ID": 2,
                            "Date": "2024-03-08",
                            "StartTime": "09:30:00",
                            "AppointmentTypeID": 4,
                            "Status": "Cancelled",
                            "LastModified": "2024-03-07 10:00:00",
                        },
                    ]
                }
            )

        client = make_nookal(handler)
        try:
            attended, cancelled = await client.get_patient_appointments("12")
        finally:
            await client.close()

        assert attended.appointment_date == datetime(2024, 3, 1, 9, 30, tzinfo=UTC)
        assert attended.status == AppointmentStatus.COMPLETED
        assert attended.patient_external_id == "12"
        assert cancelled.status == AppointmentStatus.CANCELLED
        assert cancelled.cancelled_at == datetime(2024, 3, 7, 10, 0, tzinfo=UTC)

    @pytest.mark.parametrize("label", ["Not Attended", "No Show", "DNA"])
    def test_no_show_labels_map_to_dna(self, label) -> None:
        """Should treat every no-show label as DNA with did_not_arrive set."""
        appointment = map_nookal_appointment(
            {"ID": 3, "Date": "2024-03-15", "StartTime": "09:30:00", "AppointmentTypeID": 4, "Status": label}, "12"
        )
        assert appointment.status == AppointmentStatus.DNA
        assert appointment.did_not_arrive is True

    def test_no_combined_fetch(self) -> None:
        assert NookalClient.supports_combined_fetch is False


class TestHalaxyClient:
    """Tests for the Halaxy adapter."""

    @pytest.mark.asyncio
    async def test_bearer_auth(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": {"id": "me"}})

        client = make_halaxy(handler)
        try:
            assert await client.test_connection() is True
        finally:
            await client.close()

        assert seen[0].headers["Authorization"] == "Bearer halaxy-token"
        assert seen[0].url.path == "/v1/profile"

    @pytest.mark.asyncio
    async def test_forbidden_is_auth_error(self) -> None:
        client = make_halaxy(lambda request: httpx.Response(403))
        try:
            with pytest.raises(PMSAuthError):
                await client.test_connection()
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_patient_appointments_mapping(self) -> None:
        """Should map nested type and practitioner and prefer cancelled_at for the status."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/patients/P1/appointments"
            return httpx.Response(
                200,
                json={
                    "data": [
                        {
                            "id": 77,
                            "start_time": "2024-04-02T10:00:00+10:00",
                            "status": "booked",
                            "cancelled_at": "2024-04-01T08:00:00Z",
                            "appointment_type": {"id": 5, "name": "WC Review"},
                            "practitioner": {"id": 3, "name": "Dr Kim"},
                        },
                        {"id": 78, "start_time": "2024-04-09T10:00:00Z", "did_not_arrive": True},
                    ]
                },
            )

        client = make_halaxy(handler)
        try:
            cancelled, no_show = await client.get_patient_appointments("P1")
        finally:
            await client.close()

        assert cancelled.status == AppointmentStatus.CANCELLED
        assert cancelled.appointment_type_id == "5"
        assert cancelled.practitioner_name == "Dr Kim"
        assert cancelled.patient_external_id == "P1"
        assert no_show.status == AppointmentStatus.DNA
        assert no_show.did_not_arrive is True

    @pytest.mark.asyncio
    async def test_patients_paged(self) -> None:
        """Should stop paging once a page is short."""
        pages = []

        def handler(request: httpx.Request) -> httpx.Response:
            pages.append(request.url.params["page"])
            return httpx.Response(
                200,
                json={
                    "data": [{"id": "H1", "first_name": "Lu", "last_name": "Chen", "address": {"suburb": "Carlton"}}]
                },
            )

        client = make_halaxy(handler)
        try:
            patients = await client.get_patients()
        finally:
            await client.close()

        assert pages == ["1"]
        assert patients[0].suburb == "Carlton"
