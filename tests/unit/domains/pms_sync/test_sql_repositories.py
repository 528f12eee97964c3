"""
Unit tests for the SQLAlchemy repositories.

Tests:
- BulkUpserter through SQLAlchemyPatientRepository / SQLAlchemyAppointmentRepository
- SQLAlchemyPatientRepository.update_funding
- SQLAlchemyCaseRepository.repopulate and count

Statements are compiled with the PostgreSQL dialect and answered by a small
in-memory session keyed on the bound external ids.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql.dml import Delete, Insert, Update

from app.domains.pms_sync.domain.entities import CaseCounts
from app.domains.pms_sync.domain.services import PatientFunding, SchemeUsage
from app.domains.pms_sync.domain.value_objects import FundingScheme, PMSType
from app.domains.pms_sync.infrastructure.repositories.case_repository import SQLAlchemyCaseRepository
from app.domains.pms_sync.infrastructure.repositories.record_repositories import (
    SQLAlchemyAppointmentRepository,
    SQLAlchemyPatientRepository,
)
from tests.utils import AppointmentBuilder, PatientBuilder

USER = "user-1"
NOW = datetime(2024, 6, 1, tzinfo=UTC)


def bound_params(statement) -> dict:
    return statement.compile(dialect=postgresql.dialect()).params


def bound_external_ids(statement) -> set[str]:
    ids: set[str] = set()
    for name, value in bound_params(statement).items():
        if name.startswith("external_id"):
            ids.update(value if isinstance(value, list) else [value])
    return ids


class _Savepoint:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


class KeyedSession:
    """
    AsyncSession stand-in for one table.

    INSERTs store their external ids, COUNT selects report how many of the
    bound ids are stored, UPDATEs report a rowcount the same way. Any
    statement touching a ``failing`` id raises IntegrityError.
    """

    def __init__(self, stored: set[str] | None = None, failing: set[str] | None = None) -> None:
        self.stored = set(stored or ())
        self.failing = set(failing or ())
        self.inserts: list = []
        self.savepoints = 0

    def begin_nested(self) -> _Savepoint:
        self.savepoints += 1
        return _Savepoint()

    async def execute(self, statement):
        ids = bound_external_ids(statement)
        result = MagicMock()
        if isinstance(statement, Insert | Update) and ids & self.failing:
            raise IntegrityError("statement", {}, Exception("duplicate key value violates unique constraint"))
        if isinstance(statement, Insert):
            self.inserts.append(statement)
            self.stored |= ids
        elif isinstance(statement, Update):
            result.rowcount = len(ids & self.stored)
        else:
            result.scalar_one.return_value = len(ids & self.stored)
        return result


def patients(*external_ids: str) -> list:
    return [PatientBuilder(external_id).build() for external_id in external_ids]


# ============================================================================
# Bulk upserts
# ============================================================================


@pytest.mark.unit
class TestBulkUpsert:
    """Tests for batched upserts with per-row fallback."""

    @pytest.mark.asyncio
    async def test_failed_batch_replayed_row_by_row(self) -> None:
        """Should write the healthy rows of a failed batch and report the bad one."""
        session = KeyedSession(stored={"P1"}, failing={"P3"})
        repository = SQLAlchemyPatientRepository(session)

        result = await repository.upsert_many(USER, PMSType.CLINIKO, patients("P1", "P2", "P3"))

        assert result.written == 2
        assert result.inserted == 1
        assert [failure.message for failure in result.failures] == [
            "Failed to save patient P3: duplicate key value violates unique constraint"
        ]
        assert session.stored == {"P1", "P2"}
        # One savepoint for the batch, then one per replayed row
        assert session.savepoints == 4

    @pytest.mark.asyncio
    async def test_rerun_counts_only_new_rows_as_inserted(self) -> None:
        session = KeyedSession()
        repository = SQLAlchemyPatientRepository(session)

        first = await repository.upsert_many(USER, PMSType.CLINIKO, patients("P1", "P2"))
        second = await repository.upsert_many(USER, PMSType.CLINIKO, patients("P1", "P2", "P3"))

        assert (first.written, first.inserted) == (2, 2)
        assert (second.written, second.inserted) == (3, 1)
        assert second.failures == []

    @pytest.mark.asyncio
    async def test_splits_batches_and_collapses_duplicate_keys(self) -> None:
        """Should send batch_size rows per statement and one row per natural key."""
        session = KeyedSession()
        repository = SQLAlchemyPatientRepository(session, batch_size=2)

        result = await repository.upsert_many(USER, PMSType.NOOKAL, patients("P1", "P2", "P2", "P3", "P4", "P5"))

        assert result.written == 5
        assert len(session.inserts) == 3
        assert bound_params(session.inserts[0])["pms_type_m0"] == "nookal"

    @pytest.mark.asyncio
    async def test_empty_input_writes_nothing(self) -> None:
        session = KeyedSession()
        result = await SQLAlchemyPatientRepository(session).upsert_many(USER, PMSType.CLINIKO, [])
        assert result.written == 0
        assert session.inserts == []

    @pytest.mark.asyncio
    async def test_appointment_failures_name_the_record_type(self) -> None:
        session = KeyedSession(failing={"A-2"})
        appointments = [AppointmentBuilder("A-1").build(), AppointmentBuilder("A-2").did_not_arrive().build()]

        result = await SQLAlchemyAppointmentRepository(session).upsert_many(USER, PMSType.HALAXY, appointments)

        assert result.written == 1
        assert result.failures[0].message.startswith("Failed to save appointment A-2:")


@pytest.mark.unit
class TestAppointmentQueries:
    """Tests for appointment reads that short-circuit."""

    @pytest.mark.asyncio
    async def test_empty_patient_filter_skips_query(self) -> None:
        session = MagicMock()
        session.execute = AsyncMock()
        repository = SQLAlchemyAppointmentRepository(session)

        assert await repository.list_appointments(USER, PMSType.CLINIKO, []) == []
        assert await repository.count_for_types(USER, PMSType.CLINIKO, {}) == 0
        session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_count_for_types_filters_on_mapped_ids(self) -> None:
        result = MagicMock()
        result.scalar_one.return_value = 4
        session = MagicMock()
        session.execute = AsyncMock(return_value=result)

        count = await SQLAlchemyAppointmentRepository(session).count_for_types(
            USER, PMSType.CLINIKO, {"10": FundingScheme.WC, "11": FundingScheme.EPC}
        )

        assert count == 4
        params = bound_params(session.execute.await_args.args[0])
        assert sorted(params["appointment_type_id_1"]) == ["10", "11"]


# ============================================================================
# Patient funding
# ============================================================================


@pytest.mark.unit
class TestUpdateFunding:
    """Tests for writing derived funding onto stored patients."""

    @pytest.mark.asyncio
    async def test_counts_only_matched_patients(self) -> None:
        """Should not count an UPDATE that matched no stored patient."""
        session = KeyedSession(stored={"P1"})
        funding = {
            "P1": PatientFunding(FundingScheme.WC, SchemeUsage(FundingScheme.WC, sessions_used=3, quota=8)),
            "P-GONE": PatientFunding(None),
        }

        result = await SQLAlchemyPatientRepository(session).update_funding(USER, PMSType.CLINIKO, funding)

        assert result.written == 1
        assert result.failures == []

    @pytest.mark.asyncio
    async def test_failed_update_reported(self) -> None:
        session = KeyedSession(stored={"P1", "P2"}, failing={"P2"})
        funding = {"P1": PatientFunding(None), "P2": PatientFunding(None)}

        result = await SQLAlchemyPatientRepository(session).update_funding(USER, PMSType.CLINIKO, funding)

        assert result.written == 1
        assert [failure.message for failure in result.failures] == [
            "Failed to save patient funding P2: duplicate key value violates unique constraint"
        ]
        assert session.savepoints == 2


# ============================================================================
# Cases
# ============================================================================


@pytest.mark.unit
class TestCaseRepository:
    """Tests for rebuilding cases and reading counts back."""

    @pytest.mark.asyncio
    async def test_repopulate_replaces_cases_for_funded_patients(self) -> None:
        """Should delete the connection's cases and add one per funded patient."""
        added: list = []
        session = MagicMock()
        session.execute = AsyncMock()
        session.flush = AsyncMock()
        session.add_all = MagicMock(side_effect=lambda models: added.extend(models))

        funded = PatientBuilder("P1").owned_by(USER).with_funding(FundingScheme.WC, 3, 8).build()
        unfunded = PatientBuilder("P2").owned_by(USER).build()
        visit = AppointmentBuilder("A1").for_patient("P1").of_type("T-WC").build()

        repository = SQLAlchemyCaseRepository(session)
        repository._patients = MagicMock(list_patients=AsyncMock(return_value=[funded, unfunded]))
        repository._appointments = MagicMock(list_appointments=AsyncMock(return_value=[visit]))

        count = await repository.repopulate(USER, PMSType.CLINIKO, NOW)

        assert count == 1
        repository._appointments.list_appointments.assert_awaited_once_with(USER, PMSType.CLINIKO, ["P1"])
        assert isinstance(session.execute.await_args.args[0], Delete)
        assert [model.case_number for model in added] == ["CASE-P1"]
        assert added[0].program_type == "WC"
        assert (added[0].quota, added[0].sessions_used) == (8, 3)
        session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_repopulate_without_funded_patients(self) -> None:
        session = MagicMock()
        session.execute = AsyncMock()
        session.flush = AsyncMock()
        session.add_all = MagicMock()

        repository = SQLAlchemyCaseRepository(session)
        repository._patients = MagicMock(list_patients=AsyncMock(return_value=patients("P1")))
        repository._appointments = MagicMock(list_appointments=AsyncMock())

        assert await repository.repopulate(USER, PMSType.CLINIKO, NOW) == 0
        repository._appointments.list_appointments.assert_not_awaited()
        session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_count_reads_back_case_rows(self) -> None:
        """Should build the counts from the case aggregate and the mapped appointment count."""
        case_row = MagicMock()
        case_row.one.return_value = (2, 1, 1, None)
        appointment_total = MagicMock()
        appointment_total.scalar_one.return_value = 9
        session = MagicMock()
        session.execute = AsyncMock(side_effect=[case_row, appointment_total])

        counts = await SQLAlchemyCaseRepository(session).count(USER, PMSType.NOOKAL)

        assert counts == CaseCounts(
            wc_patients=2,
            epc_patients=1,
            total_appointments=9,
            action_needed_patients=1,
            overdue_patients_count=0,
        )
        case_params = bound_params(session.execute.await_args_list[0].args[0])
        assert "nookal" in case_params.values()

    @pytest.mark.asyncio
    async def test_count_across_every_pms(self) -> None:
        case_row = MagicMock()
        case_row.one.return_value = (0, 0, 0, 0)
        appointment_total = MagicMock()
        appointment_total.scalar_one.return_value = None
        session = MagicMock()
        session.execute = AsyncMock(side_effect=[case_row, appointment_total])

        counts = await SQLAlchemyCaseRepository(session).count(USER)

        assert counts == CaseCounts()
        case_params = bound_params(session.execute.await_args_list[0].args[0])
        assert not any(value in case_params.values() for value in ("cliniko", "nookal", "halaxy"))
