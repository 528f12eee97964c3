"""
Appointment Type Classifier

Maps a PMS's free-text appointment-type names onto funding schemes using the
clinic's tag vocabulary.
"""

import logging
from collections.abc import Iterable

from ..entities import AppointmentTypeMapping, RawAppointmentType
from ..value_objects import FundingScheme, FundingTags

logger = logging.getLogger(__name__)


class AppointmentTypeClassifier:
    """
    Case-insensitive substring matcher.

    WC tags are checked before EPC tags, so a name matching both vocabularies
    resolves to WC. Types matching neither are dropped.

    Example:
        ```python
        classifier = AppointmentTypeClassifier(FundingTags.create(["WC"], ["EPC"]))
        classifier.match("WorkCover Initial (WC)")  # FundingScheme.WC
        ```
    """

    def __init__(self, tags: FundingTags):
        self._tags = tags
        self._needles = [
            (scheme, tuple(tag.lower() for tag in scheme_tags)) for scheme, scheme_tags in tags.by_priority()
        ]

    @property
    def tags(self) -> FundingTags:
        return self._tags

    def match(self, name: str | None) -> FundingScheme | None:
        """Return the funding scheme for a type name, or None."""
        haystack = (name or "").lower()
        if not haystack:
            return None
        for scheme, needles in self._needles:
            if any(needle in haystack for needle in needles):
                return scheme
        return None

    def classify(self, raw_types: Iterable[RawAppointmentType]) -> list[AppointmentTypeMapping]:
        """
        Classify a full catalogue.

        The result is the complete mapping set for the catalogue and is meant
        to replace any previously stored mappings.
        """
        mappings: list[AppointmentTypeMapping] = []
        seen: set[str] = set()
        total = 0
        for raw in raw_types:
            total += 1
            if raw.external_id in seen:
                continue
            scheme = self.match(raw.name)
            if scheme is None:
                continue
            seen.add(raw.external_id)
            mappings.append(AppointmentTypeMapping(external_id=raw.external_id, name=raw.name, code=scheme))

        logger.info(f"Classified {len(mappings)}/{total} appointment types")
        return mappings
