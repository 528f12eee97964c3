# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (PMS Sync)
# Description: Nookal REST client.
# ============================================================================
"""Nookal Client.

Nookal authenticates with an ``api_key`` query parameter and wraps every
response as ``{"status": ..., "data": ..., "message": ...}``. HTTP 200 with
a non-success status is still a failure.
"""

import logging
from datetime import datetime
from typing import Any

from ....domain.entities import Appointment, Patient, Practitioner, RawAppointmentType
from ....domain.exceptions import CredentialFormatError, PMSAuthError, PMSResponseError
from ....domain.value_objects import PMSType
from ..base_client import BasePMSClient
from .mapper import map_appointment, map_appointment_type, map_patient, map_practitioner

logger = logging.getLogger(__name__)

NOOKAL_API_URL = "https://api.nookal.com/production/v1"
PAGE_LENGTH = 100

_AUTH_HINTS = ("api key", "apikey", "api_key", "unauthori", "not authenticated")


class NookalClient(BasePMSClient):
    """Nookal adapter. Appointments are fetched per patient."""

    pms_type = PMSType.NOOKAL
    supports_combined_fetch = False

    connection_test_path = "/getLocations"

    def _auth_params(self) -> dict[str, str]:
        return {"api_key": self._api_key}

    def _unwrap(self, payload: Any) -> Any:
        if not isinstance(payload, dict):
            raise PMSResponseError(self.pms_type, "Unexpected Nookal response envelope")
        if payload.get("status") != "success":
            message = str(payload.get("message") or "Unknown error")
            if any(hint in message.lower() for hint in _AUTH_HINTS):
                raise PMSAuthError(self.pms_type, f"Nookal rejected the API key: {message}")
            raise PMSResponseError(self.pms_type, f"Nookal API error: {message}")
        data = payload.get("data")
        return data if isinstance(data, dict) else {}

    @classmethod
    def validate_api_key(cls, api_key: str) -> None:
        if not (api_key or "").strip():
            raise CredentialFormatError(PMSType.NOOKAL, "Nookal API key is required")

    @classmethod
    def default_base_url(cls, api_key: str) -> str:
        return NOOKAL_API_URL

    @staticmethod
    def _rows(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
        return [row for row in data.get(key) or [] if isinstance(row, dict)]

    async def get_practitioners(self) -> list[Practitioner]:
        data = await self._get("/getPractitioners")
        return [p for p in (map_practitioner(row) for row in self._rows(data, "practitioners")) if p]

    async def get_appointment_types(self) -> list[RawAppointmentType]:
        data = await self._get("/getAppointmentTypes")
        return [t for t in (map_appointment_type(row) for row in self._rows(data, "appointmentTypes")) if t]

    async def get_patients(self, modified_since: datetime | None = None) -> list[Patient]:
        params: dict[str, Any] = {"page_length": PAGE_LENGTH}
        if modified_since:
            params["modified_since"] = modified_since.strftime("%Y-%m-%d %H:%M:%S")

        patients: list[Patient] = []
        page = 0
        while page < self.max_pages:
            page += 1
            data = await self._get("/getPatients", params={**params, "page": page})
            rows = self._rows(data, "patients")
            patients.extend(p for p in (map_patient(row) for row in rows) if p)
            if len(rows) < PAGE_LENGTH:
                break
        else:
            logger.warning(f"Nookal patients: stopped after {page} pages, more results may exist")

        logger.info(f"Nookal: fetched {len(patients)} patients")
        return patients

    async def get_patient_appointments(self, patient_id: str) -> list[Appointment]:
        data = await self._get("/getAppointments", params={"patient_id": patient_id})
        return [a for a in (map_appointment(row, patient_id) for row in self._rows(data, "appointments")) if a]
