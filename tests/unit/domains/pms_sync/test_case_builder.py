"""Unit tests for the case read-model builder."""

from datetime import UTC, datetime

import pytest

from app.domains.pms_sync.domain.services import UNKNOWN_PRACTITIONER, build_case, case_standing, count_cases
from app.domains.pms_sync.domain.value_objects import CasePriority, CaseStatus, FundingScheme, PMSType
from tests.utils import AppointmentBuilder, PatientBuilder


class TestCaseStanding:
    """Tests for status, priority and alert by sessions remaining."""

    @pytest.mark.parametrize(
        ("remaining", "status", "priority"),
        [
            (-1, CaseStatus.CRITICAL, CasePriority.URGENT),
            (0, CaseStatus.CRITICAL, CasePriority.URGENT),
            (2, CaseStatus.WARNING, CasePriority.HIGH),
            (3, CaseStatus.WARNING, CasePriority.NORMAL),
            (4, CaseStatus.ACTIVE, CasePriority.LOW),
        ],
    )
    def test_thresholds(self, remaining, status, priority) -> None:
        """Should escalate as the quota runs out."""
        got_status, got_priority, _ = case_standing(FundingScheme.EPC, remaining)
        assert (got_status, got_priority) == (status, priority)

    def test_alert_text(self) -> None:
        assert case_standing(FundingScheme.WC, 0)[2] == "WC quota exhausted - renewal needed immediately"
        assert case_standing(FundingScheme.EPC, 2)[2] == "EPC referral expires soon - 2 sessions left"
        assert case_standing(FundingScheme.EPC, 5)[2] is None


class TestBuildCase:
    """Tests for building one case row."""

    def test_unclassified_patient_has_no_case(self, now) -> None:
        """Should return None when the patient has no funding type."""
        patient = PatientBuilder().owned_by("user-1").build()
        assert build_case(patient, [], now) is None

    def test_builds_case_from_patient_and_visits(self, now) -> None:
        """Should fill visit dates, practitioner and alert fields."""
        patient = (
            PatientBuilder("P-9").named("Ann", "Lee").owned_by("user-1").with_funding(FundingScheme.EPC, 4, 5).build()
        )
        past = AppointmentBuilder("A-1").on(datetime(2024, 5, 1, tzinfo=UTC)).build()
        past.practitioner_name = "Sam Lee"
        past.appointment_type_name = "EPC Standard"
        upcoming = AppointmentBuilder("A-2").on(datetime(2024, 7, 1, tzinfo=UTC)).build()
        cancelled_upcoming = AppointmentBuilder("A-3").on(datetime(2024, 6, 20, tzinfo=UTC)).cancelled().build()

        case = build_case(patient, [past, cancelled_upcoming, upcoming], now)

        assert case is not None
        assert case.case_number == "CASE-P-9"
        assert case.case_title == "Ann Lee - EPC"
        assert case.pms_type == PMSType.CLINIKO
        assert case.sessions_remaining == 1
        assert case.status == CaseStatus.WARNING
        assert case.is_alert_active is True
        assert case.last_visit_date == datetime(2024, 5, 1, tzinfo=UTC)
        assert case.next_visit_date == datetime(2024, 7, 1, tzinfo=UTC)

    def test_unknown_practitioner_fallback(self, now) -> None:
        patient = PatientBuilder().owned_by("user-1").with_funding(FundingScheme.WC, 1, 8).build()
        case = build_case(patient, [], now)
        assert case.physio_name == UNKNOWN_PRACTITIONER
        assert case.last_visit_date is None


class TestCountCases:
    """Tests for dashboard counts over case rows."""

    def test_counts(self, now) -> None:
        """Should count schemes, action-needed and overdue cases."""
        cases = [
            build_case(PatientBuilder("1").owned_by("u").with_funding(FundingScheme.WC, 1, 8).build(), [], now),
            build_case(PatientBuilder("2").owned_by("u").with_funding(FundingScheme.EPC, 4, 5).build(), [], now),
            build_case(PatientBuilder("3").owned_by("u").with_funding(FundingScheme.EPC, 6, 5).build(), [], now),
        ]
        counts = count_cases(cases, total_appointments=11)
        assert counts.wc_patients == 1
        assert counts.epc_patients == 2
        assert counts.action_needed_patients == 2
        assert counts.overdue_patients_count == 1
        assert counts.total_appointments == 11
