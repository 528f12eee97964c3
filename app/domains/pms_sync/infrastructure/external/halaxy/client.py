# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (PMS Sync)
# Description: Halaxy REST client.
# ============================================================================
"""Halaxy Client.

Bearer-token REST API. Lists are returned under ``data`` and paged with
``limit``/``page``.
"""

import logging
from datetime import datetime
from typing import Any

from ....domain.entities import Appointment, Patient, Practitioner, RawAppointmentType
from ....domain.exceptions import CredentialFormatError
from ....domain.value_objects import PMSType
from ..base_client import BasePMSClient
from .mapper import map_appointment, map_appointment_type, map_patient, map_practitioner

logger = logging.getLogger(__name__)

HALAXY_API_URL = "https://api.halaxy.com/v1"
PAGE_LIMIT = 100


class HalaxyClient(BasePMSClient):
    """Halaxy adapter. Appointments are fetched per patient."""

    pms_type = PMSType.HALAXY
    supports_combined_fetch = False

    connection_test_path = "/profile"

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    @classmethod
    def validate_api_key(cls, api_key: str) -> None:
        if not (api_key or "").strip():
            raise CredentialFormatError(PMSType.HALAXY, "Halaxy API key is required")

    @classmethod
    def default_base_url(cls, api_key: str) -> str:
        return HALAXY_API_URL

    @staticmethod
    def _rows(payload: Any) -> list[dict[str, Any]]:
        if isinstance(payload, dict):
            payload = payload.get("data")
        return [row for row in payload or [] if isinstance(row, dict)]

    async def _get_paged(self, path: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        page = 0
        while page < self.max_pages:
            page += 1
            batch = self._rows(await self._get(path, params={**(params or {}), "limit": PAGE_LIMIT, "page": page}))
            rows.extend(batch)
            if len(batch) < PAGE_LIMIT:
                break
        else:
            logger.warning(f"Halaxy {path}: stopped after {page} pages, more results may exist")
        return rows

    async def get_practitioners(self) -> list[Practitioner]:
        rows = self._rows(await self._get("/practitioners"))
        return [p for p in (map_practitioner(row) for row in rows) if p]

    async def get_appointment_types(self) -> list[RawAppointmentType]:
        rows = self._rows(await self._get("/appointment-types"))
        return [t for t in (map_appointment_type(row) for row in rows) if t]

    async def get_patients(self, modified_since: datetime | None = None) -> list[Patient]:
        params = {"modified_since": modified_since.isoformat()} if modified_since else None
        rows = await self._get_paged("/patients", params)
        patients = [p for p in (map_patient(row) for row in rows) if p]
        logger.info(f"Halaxy: fetched {len(patients)} patients")
        return patients

    async def get_patient_appointments(self, patient_id: str) -> list[Appointment]:
        rows = self._rows(await self._get(f"/patients/{patient_id}/appointments"))
        return [a for a in (map_appointment(row, patient_id) for row in rows) if a]
