"""
Unit tests for ReclassifyTagsUseCase.

Reclassification runs against the stored catalogue after an initial sync,
without calling the PMS.
"""

import pytest
import pytest_asyncio

from app.domains.pms_sync.application.dto import RunSyncRequest, UpdateTagsRequest
from app.domains.pms_sync.application.use_cases import ReclassifyTagsUseCase, SyncOrchestrator
from app.domains.pms_sync.domain.exceptions import SyncInProgressError
from app.domains.pms_sync.domain.value_objects import FundingScheme, FundingTags, PMSType
from tests.utils import assert_patient_funding

USER = "user-1"


def key(external_id: str) -> tuple:
    return (USER, PMSType.CLINIKO, external_id)


def build_reclassifier(deps: dict) -> ReclassifyTagsUseCase:
    return ReclassifyTagsUseCase(
        funding_tag_repository=deps["funding_tag_repository"],
        appointment_type_repository=deps["appointment_type_repository"],
        patient_repository=deps["patient_repository"],
        appointment_repository=deps["appointment_repository"],
        case_repository=deps["case_repository"],
        sync_lock=deps["sync_lock"],
        unit_of_work=deps["unit_of_work"],
        default_tags=FundingTags(),
    )


@pytest_asyncio.fixture
async def synced_deps(orchestrator_deps):
    orchestrator = SyncOrchestrator(**{k: v for k, v in orchestrator_deps.items() if k != "store"})
    await orchestrator.execute(RunSyncRequest(user_id=USER, pms_type=PMSType.CLINIKO, api_key="MS0xLWFiY2RlZg-au2"))
    return orchestrator_deps


@pytest.mark.unit
@pytest.mark.use_case
class TestReclassifyTags:
    """Tests for applying a new tag vocabulary."""

    @pytest.mark.asyncio
    async def test_moves_epc_type_to_wc(self, synced_deps) -> None:
        """Should remap the EPC type as WC and recompute its patients only."""
        store = synced_deps["store"]
        use_case = build_reclassifier(synced_deps)

        result = await use_case.execute(UpdateTagsRequest(user_id=USER, wc_tags=["EPC"]))

        assert result.mappings_count == 1
        assert result.patients_recomputed == 1
        mappings = {m.external_id: m.code for m in store.mappings[(USER, PMSType.CLINIKO)]}
        assert mappings == {"T-EPC": FundingScheme.WC}
        assert_patient_funding(store, key("P-EPC"), FundingScheme.WC, 2, 8)
        assert_patient_funding(store, key("P-WC"), FundingScheme.WC, 3, 8)

    @pytest.mark.asyncio
    async def test_counts_read_back_from_cases(self, synced_deps) -> None:
        """Should report counts from the rebuilt case rows."""
        result = await build_reclassifier(synced_deps).execute(UpdateTagsRequest(user_id=USER, wc_tags="EPC"))

        counts = result.new_counts
        assert (counts.wc_patients, counts.epc_patients, counts.total_appointments) == (2, 0, 2)

    @pytest.mark.asyncio
    async def test_stores_tags_with_defaults(self, synced_deps) -> None:
        """Should store the new vocabulary, defaulting the omitted scheme."""
        store = synced_deps["store"]

        await build_reclassifier(synced_deps).execute(UpdateTagsRequest(user_id=USER, wc_tags=["EPC", " epc "]))

        assert store.tags[USER] == FundingTags(wc_tags=("EPC",), epc_tags=("EPC",))

    @pytest.mark.asyncio
    async def test_unchanged_tags_keep_counts(self, synced_deps) -> None:
        result = await build_reclassifier(synced_deps).execute(
            UpdateTagsRequest(user_id=USER, wc_tags=["WC"], epc_tags=["EPC"])
        )

        assert result.mappings_count == 2
        assert (result.new_counts.wc_patients, result.new_counts.epc_patients) == (1, 1)
        assert_patient_funding(synced_deps["store"], key("P-EPC"), FundingScheme.EPC, 2, 5)

    @pytest.mark.asyncio
    async def test_without_catalogue(self, orchestrator_deps) -> None:
        """Should save the tags and report zero counts before any sync."""
        store = orchestrator_deps["store"]

        result = await build_reclassifier(orchestrator_deps).execute(
            UpdateTagsRequest(user_id=USER, wc_tags=["Comp"], epc_tags=["CDM"])
        )

        assert result.mappings_count == 0
        assert result.patients_recomputed == 0
        assert result.new_counts.wc_patients == 0
        assert store.tags[USER].wc_tags == ("Comp",)

    @pytest.mark.asyncio
    async def test_running_sync_blocks_reclassification(self, synced_deps) -> None:
        """Should fail fast while a sync holds the lock, after saving the tags."""
        store = synced_deps["store"]
        synced_deps["sync_lock"].held.add((USER, PMSType.CLINIKO))

        with pytest.raises(SyncInProgressError):
            await build_reclassifier(synced_deps).execute(UpdateTagsRequest(user_id=USER, wc_tags=["EPC"]))

        assert store.tags[USER].wc_tags == ("EPC",)
        assert {m.external_id for m in store.mappings[(USER, PMSType.CLINIKO)]} == {"T-WC", "T-EPC"}
