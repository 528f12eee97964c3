"""Unit tests for ClinikoClient using httpx.MockTransport."""

import base64
from datetime import UTC, datetime

import httpx
import pytest

from app.domains.pms_sync.domain.exceptions import CredentialFormatError, PMSAuthError, PMSConnectionError
from app.domains.pms_sync.domain.value_objects import AppointmentStatus
from app.domains.pms_sync.infrastructure.external.cliniko import ClinikoClient, extract_region
from app.domains.pms_sync.infrastructure.external.retry import RetryPolicy

API_KEY = "MS0xLWFiY2RlZg-uk1"
BASE_URL = "https://api.uk1.cliniko.com/v1"


def link(resource: str, resource_id: int) -> dict:
    return {"links": {"self": f"{BASE_URL}/{resource}/{resource_id}"}}


def make_client(handler) -> ClinikoClient:
    return ClinikoClient(
        api_key=API_KEY,
        base_url=BASE_URL,
        retry_policy=RetryPolicy(max_attempts=3, base_delay=0),
        transport=httpx.MockTransport(handler),
    )


class TestClinikoKeys:
    """Tests for key validation and region extraction."""

    def test_extracts_region_suffix(self) -> None:
        assert extract_region(API_KEY) == "uk1"
        assert extract_region("nokeyregion") == "au2"

    def test_default_base_url(self) -> None:
        assert ClinikoClient.default_base_url(API_KEY) == BASE_URL

    @pytest.mark.parametrize("key", ["", "   ", "noregion", "abc-!!"])
    def test_rejects_malformed_keys(self, key) -> None:
        """Should reject keys without a valid region suffix."""
        with pytest.raises(CredentialFormatError):
            ClinikoClient.validate_api_key(key)


class TestClinikoRequests:
    """Tests for auth, pagination and error mapping."""

    @pytest.mark.asyncio
    async def test_basic_auth_and_connection_test(self) -> None:
        """Should send the base64 key as Basic auth."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"businesses": []})

        client = make_client(handler)
        try:
            assert await client.test_connection() is True
        finally:
            await client.close()

        expected = base64.b64encode(API_KEY.encode()).decode()
        assert seen[0].headers["Authorization"] == f"Basic {expected}"
        assert seen[0].url.path == "/v1/businesses"

    @pytest.mark.asyncio
    async def test_not_found_connection_test_returns_false(self) -> None:
        """Should report a wrong region as a failed test, not an error."""
        client = make_client(lambda request: httpx.Response(404, json={}))
        try:
            assert await client.test_connection() is False
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_follows_next_links(self) -> None:
        """Should collect every page of appointment types."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params.get("page") == "2":
                return httpx.Response(
                    200, json={"appointment_types": [{"id": 2, "name": "EPC Standard"}], "links": {}}
                )
            return httpx.Response(
                200,
                json={
                    "appointment_types": [{"id": 1, "name": "WC Initial"}, {"id": 3, "name": " "}],
                    "links": {"next": f"{BASE_URL}/appointment_types?page=2&per_page=100"},
                },
            )

        client = make_client(handler)
        try:
            types = await client.get_appointment_types()
        finally:
            await client.close()

        assert [(t.external_id, t.name) for t in types] == [("1", "WC Initial"), ("2", "EPC Standard")]

    @pytest.mark.asyncio
    async def test_auth_error_not_retried(self) -> None:
        """Should raise PMSAuthError on 401 after a single attempt."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(401, json={})

        client = make_client(handler)
        try:
            with pytest.raises(PMSAuthError) as exc_info:
                await client.get_practitioners()
        finally:
            await client.close()

        assert len(calls) == 1
        assert exc_info.value.upstream_status == 401
        assert "Invalid API key" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transient_error_retried(self) -> None:
        """Should retry a 503 and return the next successful page."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503)
            return httpx.Response(200, json={"practitioners": [{"id": 9, "first_name": "Sam", "last_name": "Lee"}]})

        client = make_client(handler)
        try:
            practitioners = await client.get_practitioners()
        finally:
            await client.close()

        assert len(calls) == 2
        assert practitioners[0].name == "Sam Lee"

    @pytest.mark.asyncio
    async def test_retries_exhausted(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        client = make_client(handler)
        try:
            with pytest.raises(PMSConnectionError):
                await client.get_practitioners()
        finally:
            await client.close()


class TestClinikoCombinedFetch:
    """Tests for bookings grouped by patient."""

    @pytest.mark.asyncio
    async def test_groups_bookings_by_patient(self) -> None:
        """Should fetch each patient once and skip bookings without a patient."""
        patient_calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if path == "/v1/bookings":
                assert request.url.params.get("q[]") == "appointment_type_id:=10,11"
                assert request.url.params.get("updated_since") == "2024-01-01T00:00:00Z"
                return httpx.Response(
                    200,
                    json={
                        "bookings": [
                            {
                                "id": 1,
                                "starts_at": "2024-02-01T09:00:00Z",
                                "ends_at": "2024-02-01T09:45:00Z",
                                "patient_arrived": True,
                                "patient": link("patients", 501),
                                "appointment_type": link("appointment_types", 10),
                                "practitioner": link("practitioners", 7),
                            },
                            {
                                "id": 2,
                                "starts_at": "2024-03-01T09:00:00Z",
                                "cancelled_at": "2024-02-28T10:00:00Z",
                                "patient": link("patients", 501),
                                "appointment_type": link("appointment_types", 10),
                            },
                            {"id": 3, "starts_at": "2024-03-02T09:00:00Z"},
                        ],
                        "links": {},
                    },
                )
            if path == "/v1/patients/501":
                patient_calls.append(request)
                return httpx.Response(200, json={"id": 501, "first_name": "Ann", "last_name": "Lee", "sex": "F"})
            return httpx.Response(404)

        client = make_client(handler)
        try:
            result = await client.get_patients_with_appointments(
                ["10", "11"], modified_since=datetime(2024, 1, 1, tzinfo=UTC)
            )
        finally:
            await client.close()

        assert len(patient_calls) == 1
        assert result.skipped_patients == {}
        assert len(result.records) == 1
        record = result.records[0]
        assert record.patient.external_id == "501"
        assert record.patient.full_name == "Ann Lee"
        attended, cancelled = record.appointments
        assert attended.status == AppointmentStatus.COMPLETED
        assert attended.duration_minutes == 45
        assert attended.appointment_type_id == "10"
        assert attended.practitioner_external_id == "7"
        assert cancelled.status == AppointmentStatus.CANCELLED
        assert cancelled.cancelled_at is not None

    @pytest.mark.asyncio
    async def test_no_type_ids_skips_fetch(self) -> None:
        """Should not call Cliniko without funded appointment types."""
        client = make_client(lambda request: pytest.fail("unexpected request"))
        try:
            result = await client.get_patients_with_appointments([])
        finally:
            await client.close()

        assert result.records == []
        assert result.skipped_patients == {}

    @pytest.mark.asyncio
    async def test_unreadable_patient_is_skipped_and_reported(self) -> None:
        """Should keep fetching when one patient answers 404 and report the skipped id."""

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if path == "/v1/bookings":
                return httpx.Response(
                    200,
                    json={
                        "bookings": [
                            {
                                "id": 1,
                                "starts_at": "2024-02-01T09:00:00Z",
                                "patient": link("patients", 501),
                                "appointment_type": link("appointment_types", 10),
                            },
                            {
                                "id": 2,
                                "starts_at": "2024-02-02T09:00:00Z",
                                "patient": link("patients", 502),
                                "appointment_type": link("appointment_types", 10),
                            },
                        ],
                        "links": {},
                    },
                )
            if path == "/v1/patients/502":
                return httpx.Response(200, json={"id": 502, "first_name": "Bo", "last_name": "Tan"})
            return httpx.Response(404)

        client = make_client(handler)
        try:
            result = await client.get_patients_with_appointments(["10"])
        finally:
            await client.close()

        assert [r.patient.external_id for r in result.records] == ["502"]
        assert list(result.skipped_patients) == ["501"]
        assert "404" in result.skipped_patients["501"]

    @pytest.mark.asyncio
    async def test_auth_failure_on_patient_aborts_fetch(self) -> None:
        """Should propagate PMSAuthError raised while reading a patient."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v1/bookings":
                return httpx.Response(
                    200,
                    json={
                        "bookings": [
                            {
                                "id": 1,
                                "starts_at": "2024-02-01T09:00:00Z",
                                "patient": link("patients", 501),
                                "appointment_type": link("appointment_types", 10),
                            }
                        ],
                        "links": {},
                    },
                )
            return httpx.Response(401)

        client = make_client(handler)
        try:
            with pytest.raises(PMSAuthError):
                await client.get_patients_with_appointments(["10"])
        finally:
            await client.close()
