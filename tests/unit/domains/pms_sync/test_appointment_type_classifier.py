"""Unit tests for AppointmentTypeClassifier and FundingTags."""

import pytest

from app.domains.pms_sync.domain.entities import RawAppointmentType, index_mappings
from app.domains.pms_sync.domain.services import AppointmentTypeClassifier
from app.domains.pms_sync.domain.value_objects import FundingScheme, FundingTags, normalize_tags


class TestFundingTags:
    """Tests for the tag vocabulary value object."""

    def test_normalizes_comma_separated_string(self) -> None:
        """Should split, trim and drop empty entries."""
        assert normalize_tags(" WC , WorkCover,, ") == ("WC", "WorkCover")

    def test_dedupes_case_insensitively(self) -> None:
        """Should keep the first spelling of a duplicated tag."""
        assert normalize_tags(["EPC", "epc", "Medicare"]) == ("EPC", "Medicare")

    def test_empty_vocabulary_falls_back_to_defaults(self) -> None:
        """Should use the defaults when a scheme has no tags."""
        tags = FundingTags.create(wc_tags=[], epc_tags="  ", default_wc=["WC"], default_epc=["EPC"])
        assert tags.wc_tags == ("WC",)
        assert tags.epc_tags == ("EPC",)

    def test_as_csv(self) -> None:
        tags = FundingTags.create(["WC", "WorkCover"], ["EPC"])
        assert tags.as_csv(FundingScheme.WC) == "WC,WorkCover"


class TestAppointmentTypeClassifier:
    """Tests for substring classification of appointment types."""

    @pytest.fixture
    def classifier(self) -> AppointmentTypeClassifier:
        return AppointmentTypeClassifier(FundingTags.create(["WC", "WorkCover"], ["EPC"]))

    def test_matches_case_insensitive_substring(self, classifier) -> None:
        """Should match a tag anywhere in the name, ignoring case."""
        assert classifier.match("Initial workcover assessment") == FundingScheme.WC
        assert classifier.match("epc follow up") == FundingScheme.EPC

    def test_wc_wins_when_both_match(self, classifier) -> None:
        """Should resolve a name matching both vocabularies to WC."""
        assert classifier.match("WC / EPC combined") == FundingScheme.WC

    def test_unmatched_and_empty_names(self, classifier) -> None:
        """Should return None for names matching no tag."""
        assert classifier.match("Private Consult") is None
        assert classifier.match("") is None
        assert classifier.match(None) is None

    def test_classify_drops_unmatched_types(self, classifier) -> None:
        """Should produce mappings only for matched types."""
        mappings = classifier.classify(
            [
                RawAppointmentType("1", "WorkCover Initial"),
                RawAppointmentType("2", "EPC Standard"),
                RawAppointmentType("3", "Pilates"),
            ]
        )
        assert index_mappings(mappings) == {"1": FundingScheme.WC, "2": FundingScheme.EPC}

    def test_classify_ignores_duplicate_ids(self, classifier) -> None:
        """Should keep one mapping per external id."""
        mappings = classifier.classify([RawAppointmentType("1", "WC A"), RawAppointmentType("1", "WC B")])
        assert len(mappings) == 1
        assert mappings[0].name == "WC A"

    def test_classify_empty_catalog(self, classifier) -> None:
        assert classifier.classify([]) == []
