# ============================================================================
# SCOPE: APPLICATION LAYER (PMS Sync)
# Description: Sync orchestrator - one full synchronization pass per run.
# ============================================================================
"""Run Sync Use Case.

Drives a run through its states:

    idle -> connecting -> fetching_types -> fetching_practitioners
         -> fetching_patients_and_appointments -> persisting -> completed

Appointment-type classification and practitioners are committed before any
appointment is written. Connectivity and auth errors abort the run, while
per-record write failures end up in the run's issues and the run still
completes. Exactly one sync log row is written per run, failed runs included.
"""

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from app.core.domain import DomainException

from ...domain.entities import (
    Appointment,
    AppointmentTypeMapping,
    Patient,
    RawAppointmentType,
    SyncRun,
    SyncControl,
    index_mappings,
)
from ...domain.exceptions import (
    ClassificationGapError,
    CredentialNotFoundError,
    PMSAuthError,
    PMSError,
    PMSResponseError,
    SyncCancelledError,
    SyncDisabledError,
)
from ...domain.value_objects import FundingScheme, FundingTags, SyncState, SyncType
from ..dto import RunSyncRequest, SyncStoredCredentialRequest, SyncSummary
from ..ports import BulkWriteResult, PatientWithAppointments
from ..run_context import CancellationToken
from ..services import FundingRefreshService

if TYPE_CHECKING:
    from ..ports import (
        IAppointmentRepository,
        IAppointmentTypeRepository,
        ICaseRepository,
        ICredentialRepository,
        ICredentialVault,
        IFundingTagRepository,
        IPatientRepository,
        IPMSClient,
        IPMSClientFactory,
        IPractitionerRepository,
        ISyncControlRepository,
        ISyncLock,
        ISyncLogRepository,
        IUnitOfWork,
    )

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Use case for a full PMS synchronization run.

    Example:
        ```python
        orchestrator = container.create_sync_orchestrator(db)
        summary = await orchestrator.execute(
            RunSyncRequest(user_id="user-1", pms_type=PMSType.CLINIKO, api_key=key)
        )
        ```
    """

    def __init__(
        self,
        client_factory: "IPMSClientFactory",
        appointment_type_repository: "IAppointmentTypeRepository",
        funding_tag_repository: "IFundingTagRepository",
        practitioner_repository: "IPractitionerRepository",
        patient_repository: "IPatientRepository",
        appointment_repository: "IAppointmentRepository",
        sync_log_repository: "ISyncLogRepository",
        sync_control_repository: "ISyncControlRepository",
        case_repository: "ICaseRepository",
        sync_lock: "ISyncLock",
        unit_of_work: "IUnitOfWork",
        funding_service: FundingRefreshService | None = None,
        default_tags: FundingTags | None = None,
        default_sync_frequency_hours: int = 6,
    ) -> None:
        self._factory = client_factory
        self._types = appointment_type_repository
        self._tags = funding_tag_repository
        self._practitioners = practitioner_repository
        self._patients = patient_repository
        self._appointments = appointment_repository
        self._logs = sync_log_repository
        self._controls = sync_control_repository
        self._cases = case_repository
        self._lock = sync_lock
        self._uow = unit_of_work
        self._funding = funding_service or FundingRefreshService(patient_repository, appointment_repository)
        self._default_tags = default_tags or FundingTags()
        self._default_frequency = default_sync_frequency_hours

    async def execute(self, request: RunSyncRequest, cancel_token: CancellationToken | None = None) -> SyncSummary:
        """Execute one sync run.

        Args:
            request: Connection and plaintext API key.
            cancel_token: Cancelled when the caller goes away.

        Returns:
            SyncSummary of the completed run.

        Raises:
            SyncInProgressError: If a run for the connection is already active.
            SyncDisabledError: If sync is paused for the connection.
            PMSError: If the PMS cannot be reached or rejects the credentials.
            SyncCancelledError: If the run was cancelled.
        """
        token = cancel_token or CancellationToken()
        async with self._lock.hold(request.user_id, request.pms_type):
            return await self._run(request, token)

    async def _run(self, request: RunSyncRequest, token: CancellationToken) -> SyncSummary:
        control = await self._controls.get(request.user_id, request.pms_type)
        if control is not None and not control.is_enabled:
            raise SyncDisabledError(request.user_id, request.pms_type)

        sync_type = request.sync_type
        last_sync = await self._logs.get_last_successful_sync(request.user_id, request.pms_type)
        if last_sync is None and sync_type == SyncType.MANUAL:
            sync_type = SyncType.INITIAL
        modified_since = last_sync if sync_type == SyncType.INCREMENTAL else None

        run = SyncRun(
            user_id=request.user_id,
            pms_type=request.pms_type,
            sync_type=sync_type,
            modified_since=modified_since,
        )
        await self._logs.add(run)
        await self._uow.commit()
        logger.info(
            f"Sync run {run.id} started: {run.pms_type.value} {sync_type.value} for user {run.user_id}"
            + (f" (modified since {modified_since.isoformat()})" if modified_since else "")
        )

        client = self._factory.create_client(request.pms_type, request.api_key, token)
        try:
            await self._sync(run, client, control, token)
        except asyncio.CancelledError:
            await self._record_failure(run, SyncCancelledError("request cancelled"))
            raise
        except Exception as e:
            await self._record_failure(run, e)
            raise
        finally:
            await client.close()

        return SyncSummary(
            wc_patients=run.wc_patients,
            epc_patients=run.epc_patients,
            total_appointments=run.total_appointments,
            appointment_types_count=run.appointment_types_count,
            issues=list(run.issues),
            sync_log_id=run.id,
            patients_processed=run.patients_processed,
            patients_added=run.patients_added,
            appointments_synced=run.appointments_synced,
        )

    async def _sync(
        self,
        run: SyncRun,
        client: "IPMSClient",
        control: SyncControl | None,
        token: CancellationToken,
    ) -> None:
        self._advance(run, SyncState.CONNECTING)
        if not await client.test_connection():
            raise PMSResponseError(run.pms_type, f"{run.pms_type.display_name} rejected the connection test")

        self._advance(run, SyncState.FETCHING_TYPES)
        raw_types = await client.get_appointment_types()
        mappings = await self._sync_appointment_types(run, client, raw_types)
        await self._checkpoint(run)

        self._advance(run, SyncState.FETCHING_PRACTITIONERS)
        practitioners = await client.get_practitioners()
        result = await self._practitioners.upsert_many(run.user_id, run.pms_type, practitioners)
        run.practitioners_synced = result.written
        self._collect_failures(run, result)
        await self._checkpoint(run)

        self._advance(run, SyncState.FETCHING_PATIENTS_AND_APPOINTMENTS)
        mapping = index_mappings(mappings)
        records = await self._fetch_records(run, client, mapping, token)

        token.raise_if_cancelled()
        self._advance(run, SyncState.PERSISTING)
        await self._persist(run, records, raw_types, mapping)

        now = datetime.now(UTC)
        if control is None:
            control = SyncControl(
                user_id=run.user_id,
                pms_type=run.pms_type,
                sync_frequency_hours=self._default_frequency,
            )
        control.record_sync(now)
        await self._controls.save(control)

        run.complete(now)
        try:
            await self._logs.update(run)
            await self._uow.commit()
        except Exception:
            # Nothing was stored, so the run must end up FAILED instead
            run.revoke_completion()
            raise
        logger.info(
            f"Sync run {run.id} completed: {run.patients_synced} patients, "
            f"{run.appointments_synced} appointments, {run.wc_patients} WC / {run.epc_patients} EPC, "
            f"{len(run.issues)} issues"
        )

    def _advance(self, run: SyncRun, state: SyncState) -> None:
        run.transition_to(state)
        logger.info(f"Sync run {run.id}: {state.value}")

    async def _checkpoint(self, run: SyncRun) -> None:
        await self._logs.update(run)
        await self._uow.commit()

    async def _resolve_tags(self, user_id: str) -> FundingTags:
        stored = await self._tags.get_tags(user_id)
        if stored is None:
            return self._default_tags
        return FundingTags.create(
            stored.wc_tags,
            stored.epc_tags,
            default_wc=self._default_tags.wc_tags,
            default_epc=self._default_tags.epc_tags,
        )

    async def _sync_appointment_types(
        self,
        run: SyncRun,
        client: "IPMSClient",
        raw_types: list[RawAppointmentType],
    ) -> list[AppointmentTypeMapping]:
        await self._types.replace_catalog(run.user_id, run.pms_type, raw_types)

        tags = await self._resolve_tags(run.user_id)
        mappings = client.classify_types(raw_types, tags)
        run.appointment_types_count = await self._types.replace_mappings(run.user_id, run.pms_type, mappings)

        if raw_types and not mappings:
            gap = ClassificationGapError(run.pms_type, len(raw_types), tags.wc_tags, tags.epc_tags)
            logger.warning(f"Sync run {run.id}: {gap.message}")
            run.add_warning(gap.to_dict())

        logger.info(
            f"Sync run {run.id}: {len(raw_types)} appointment types, "
            f"{run.appointment_types_count} classified"
        )
        return mappings

    async def _fetch_records(
        self,
        run: SyncRun,
        client: "IPMSClient",
        mapping: dict[str, FundingScheme],
        token: CancellationToken,
    ) -> list[PatientWithAppointments]:
        if client.supports_combined_fetch:
            combined = await client.get_patients_with_appointments(mapping.keys(), run.modified_since)
            for patient_id, reason in combined.skipped_patients.items():
                run.add_issue(f"Failed to fetch patient {patient_id}: {reason}")
            return combined.records

        records: list[PatientWithAppointments] = []
        for patient in await client.get_patients(run.modified_since):
            token.raise_if_cancelled()
            try:
                appointments = await client.get_patient_appointments(patient.external_id)
            except PMSAuthError:
                raise
            except PMSError as e:
                logger.warning(f"Sync run {run.id}: appointments of patient {patient.external_id} skipped: {e.message}")
                run.add_issue(f"Failed to fetch appointments for patient {patient.external_id}: {e.message}")
                appointments = []
            records.append(PatientWithAppointments(patient=patient, appointments=appointments))
        return records

    async def _persist(
        self,
        run: SyncRun,
        records: list[PatientWithAppointments],
        raw_types: list[RawAppointmentType],
        mapping: dict[str, FundingScheme],
    ) -> None:
        patients: list[Patient] = []
        appointments: list[Appointment] = []
        for record in records:
            record.patient.user_id = run.user_id
            record.patient.pms_type = run.pms_type
            patients.append(record.patient)
            for appointment in record.appointments:
                appointment.user_id = run.user_id
                appointment.pms_type = run.pms_type
                if appointment.patient_external_id is None:
                    appointment.patient_external_id = record.patient.external_id
                appointments.append(appointment)

        result = await self._patients.upsert_many(run.user_id, run.pms_type, patients)
        run.patients_processed = len(patients)
        run.patients_added = result.inserted
        run.patients_synced = result.written
        self._collect_failures(run, result)

        patient_ids = await self._patients.get_id_index(run.user_id, run.pms_type)
        practitioner_names = await self._practitioners.get_name_index(run.user_id, run.pms_type)
        type_names = {raw.external_id: raw.name for raw in raw_types}
        for appointment in appointments:
            # Unresolved patients are stored with a null reference
            appointment.patient_id = patient_ids.get(appointment.patient_external_id or "")
            if not appointment.practitioner_name and appointment.practitioner_external_id:
                appointment.practitioner_name = practitioner_names.get(appointment.practitioner_external_id)
            if not appointment.appointment_type_name and appointment.appointment_type_id:
                appointment.appointment_type_name = type_names.get(appointment.appointment_type_id)

        result = await self._appointments.upsert_many(run.user_id, run.pms_type, appointments)
        run.appointments_synced = result.written
        self._collect_failures(run, result)

        now = datetime.now(UTC)
        result = await self._funding.refresh(
            run.user_id, run.pms_type, (p.external_id for p in patients), mapping, now
        )
        self._collect_failures(run, result)

        await self._cases.repopulate(run.user_id, run.pms_type, now)
        counts = await self._cases.count(run.user_id, run.pms_type)
        run.wc_patients = counts.wc_patients
        run.epc_patients = counts.epc_patients
        run.total_appointments = counts.total_appointments

    def _collect_failures(self, run: SyncRun, result: BulkWriteResult) -> None:
        for failure in result.failures:
            logger.warning(f"Sync run {run.id}: {failure.message}")
            run.add_issue(failure.message)

    async def _record_failure(self, run: SyncRun, error: BaseException) -> None:
        """Roll back the step in flight and store the failed run."""
        if isinstance(error, DomainException):
            payload: dict[str, Any] = error.to_dict()
        else:
            payload = {"error": "INTERNAL_ERROR", "message": str(error) or type(error).__name__}
        logger.error(f"Sync run {run.id} failed in {run.state.value}: {payload['message']}")

        try:
            await self._uow.rollback()
            run.fail(payload)
            await self._logs.update(run)
            await self._uow.commit()
        except Exception as log_error:
            # The original error is re-raised by the caller
            logger.exception(f"Could not record failure of sync run {run.id}: {log_error}")


class SyncStoredCredentialUseCase:
    """Use case for a sync using the clinic's stored credential."""

    def __init__(
        self,
        credential_repository: "ICredentialRepository",
        vault: "ICredentialVault",
        orchestrator: SyncOrchestrator,
    ) -> None:
        self._credentials = credential_repository
        self._vault = vault
        self._orchestrator = orchestrator

    async def execute(
        self, request: SyncStoredCredentialRequest, cancel_token: CancellationToken | None = None
    ) -> SyncSummary:
        """Decrypt the stored key and run the sync.

        Raises:
            CredentialNotFoundError: If no active credential is stored.
            CredentialVaultError: If the stored key cannot be decrypted.
        """
        credential = await self._credentials.get_active(request.user_id, request.pms_type)
        if credential is None:
            raise CredentialNotFoundError(request.user_id, request.pms_type)

        api_key = self._vault.decrypt(credential.api_key_encrypted)
        return await self._orchestrator.execute(
            RunSyncRequest(
                user_id=request.user_id,
                pms_type=request.pms_type,
                api_key=api_key,
                sync_type=request.sync_type,
            ),
            cancel_token,
        )
