# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (PMS Sync)
# Description: Cliniko REST client.
# ============================================================================
"""Cliniko Client.

Cliniko API keys end with the shard they were issued on
(``MS0xLTEy...-au2``), which selects the API host. Requests use HTTP Basic
auth with the base64-encoded key and listings are followed through
``links.next``.
"""

import base64
import logging
import re
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from ....application.ports import CombinedFetchResult, PatientWithAppointments
from ....domain.entities import Appointment, Patient, Practitioner, RawAppointmentType
from ....domain.exceptions import CredentialFormatError, PMSAuthError, PMSError, PMSResponseError
from ....domain.value_objects import PMSType
from ..base_client import BasePMSClient
from .mapper import map_appointment_type, map_booking, map_patient, map_practitioner

logger = logging.getLogger(__name__)

DEFAULT_REGION = "au2"
REGION_PATTERN = re.compile(r"^[a-zA-Z0-9]{2,4}$")
PAGE_SIZE = 100


def extract_region(api_key: str, default: str = DEFAULT_REGION) -> str:
    """Shard suffix of a Cliniko API key."""
    parts = api_key.strip().split("-")
    if len(parts) >= 2 and REGION_PATTERN.match(parts[-1]):
        return parts[-1].lower()
    return default


def cliniko_base_url(api_key: str, default_region: str = DEFAULT_REGION) -> str:
    return f"https://api.{extract_region(api_key, default_region)}.cliniko.com/v1"


def _iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


class ClinikoClient(BasePMSClient):
    """Cliniko adapter.

    Supports the combined fetch: bookings filtered by appointment type are
    grouped by patient, so only patients with funded bookings are fetched.
    """

    pms_type = PMSType.CLINIKO
    supports_combined_fetch = True

    connection_test_path = "/businesses"
    connection_test_params = {"per_page": 1}

    def _auth_headers(self) -> dict[str, str]:
        token = base64.b64encode(self._api_key.encode()).decode()
        return {"Authorization": f"Basic {token}"}

    def _auth_error_message(self, status: int) -> str:
        if status == 401:
            return "Invalid API key - please check your Cliniko API key is correct"
        return "API key does not have sufficient permissions"

    async def test_connection(self) -> bool:
        connected = await super().test_connection()
        if not connected:
            logger.warning(f"Cliniko endpoint not found at {self.base_url} - check the API key region")
        return connected

    @classmethod
    def validate_api_key(cls, api_key: str) -> None:
        key = (api_key or "").strip()
        if not key:
            raise CredentialFormatError(PMSType.CLINIKO, "Cliniko API key is required")
        parts = key.split("-")
        if len(parts) < 2:
            raise CredentialFormatError(
                PMSType.CLINIKO, "Cliniko API key must end with its region (e.g. ...-au2)"
            )
        if not REGION_PATTERN.match(parts[-1]):
            raise CredentialFormatError(PMSType.CLINIKO, f"Invalid Cliniko region suffix '{parts[-1]}'")

    @classmethod
    def default_base_url(cls, api_key: str) -> str:
        return cliniko_base_url(api_key)

    # =========================================================================
    # Pagination
    # =========================================================================

    async def _paginate(self, path: str, key: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """Collect ``key`` across pages by following ``links.next``."""
        items: list[dict[str, Any]] = []
        url: str | None = path
        query: dict[str, Any] | None = {"per_page": PAGE_SIZE, **(params or {})}
        pages = 0

        while url and pages < self.max_pages:
            payload = await self._get(url, params=query)
            if not isinstance(payload, dict):
                raise PMSResponseError(self.pms_type, f"Unexpected Cliniko response for {path}")
            pages += 1
            items.extend(item for item in payload.get(key) or [] if isinstance(item, dict))
            url = (payload.get("links") or {}).get("next")
            # The next link already carries the query string
            query = None

        if url:
            logger.warning(f"Cliniko {path}: stopped after {pages} pages, more results available")
        logger.debug(f"Cliniko {path}: {len(items)} {key} from {pages} pages")
        return items

    # =========================================================================
    # Catalogues
    # =========================================================================

    async def get_practitioners(self) -> list[Practitioner]:
        rows = await self._paginate("/practitioners", "practitioners")
        return [p for p in (map_practitioner(row) for row in rows) if p]

    async def get_appointment_types(self) -> list[RawAppointmentType]:
        rows = await self._paginate("/appointment_types", "appointment_types")
        return [t for t in (map_appointment_type(row) for row in rows) if t]

    async def get_patients(self, modified_since: datetime | None = None) -> list[Patient]:
        params = {"q[]": f"updated_at:>{_iso(modified_since)}"} if modified_since else None
        rows = await self._paginate("/patients", "patients", params)
        return [p for p in (map_patient(row) for row in rows) if p]

    async def get_patient_appointments(self, patient_id: str) -> list[Appointment]:
        rows = await self._paginate(f"/patients/{patient_id}/bookings", "bookings")
        return [a for a in (map_booking(row) for row in rows) if a]

    async def get_patient(self, patient_id: str) -> Patient | None:
        payload = await self._get(f"/patients/{patient_id}")
        if not isinstance(payload, dict):
            raise PMSResponseError(self.pms_type, f"Unexpected Cliniko response for patient {patient_id}")
        return map_patient(payload)

    # =========================================================================
    # Combined fetch
    # =========================================================================

    async def get_patients_with_appointments(
        self,
        appointment_type_ids: Iterable[str],
        modified_since: datetime | None = None,
    ) -> CombinedFetchResult:
        type_ids = [str(type_id) for type_id in appointment_type_ids if type_id]
        if not type_ids:
            logger.info("Cliniko combined fetch skipped: no funded appointment types")
            return CombinedFetchResult()

        params: dict[str, Any] = {"q[]": f"appointment_type_id:={','.join(type_ids)}"}
        if modified_since:
            params["updated_since"] = _iso(modified_since)

        bookings = await self._paginate("/bookings", "bookings", params)

        grouped: dict[str, list[Appointment]] = {}
        skipped = 0
        for row in bookings:
            appointment = map_booking(row)
            if appointment is None or appointment.patient_external_id is None:
                skipped += 1
                continue
            grouped.setdefault(appointment.patient_external_id, []).append(appointment)
        if skipped:
            logger.info(f"Cliniko: skipped {skipped} bookings without a patient")

        result = CombinedFetchResult()
        for patient_id, appointments in grouped.items():
            self._cancel_token.raise_if_cancelled()
            try:
                patient = await self.get_patient(patient_id)
            except PMSAuthError:
                raise
            except PMSError as e:
                # Deleted or merged patients still have bookings
                logger.warning(f"Cliniko patient {patient_id} skipped: {e.message}")
                result.skipped_patients[patient_id] = e.message
                continue
            if patient is None:
                logger.warning(f"Cliniko patient {patient_id} could not be mapped, skipping")
                result.skipped_patients[patient_id] = "patient record could not be mapped"
                continue
            result.records.append(PatientWithAppointments(patient=patient, appointments=appointments))

        logger.info(
            f"Cliniko combined fetch: {len(bookings)} bookings across {len(result.records)} patients, "
            f"{len(result.skipped_patients)} skipped"
        )
        return result
