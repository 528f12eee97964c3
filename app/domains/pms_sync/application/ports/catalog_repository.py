"""
Appointment Type Catalogue and Funding Tag Ports
"""

from typing import Protocol, runtime_checkable

from ...domain.entities import AppointmentTypeMapping, RawAppointmentType
from ...domain.value_objects import FundingTags, PMSType


@runtime_checkable
class IAppointmentTypeRepository(Protocol):
    """
    Raw appointment-type catalogue and its funding classification.

    Both sets are replaced wholesale, never merged.
    """

    async def replace_catalog(self, user_id: str, pms_type: PMSType, raw_types: list[RawAppointmentType]) -> int:
        """Replace the stored raw catalogue. Returns the number of types stored."""
        ...

    async def get_catalog(self, user_id: str, pms_type: PMSType) -> list[RawAppointmentType]:
        """Stored raw catalogue (input for reclassification)."""
        ...

    async def replace_mappings(
        self, user_id: str, pms_type: PMSType, mappings: list[AppointmentTypeMapping]
    ) -> int:
        """Replace the funding classification. Returns the number of mappings stored."""
        ...

    async def get_mappings(self, user_id: str, pms_type: PMSType) -> list[AppointmentTypeMapping]:
        """Current funding classification."""
        ...


@runtime_checkable
class IFundingTagRepository(Protocol):
    """Clinic tag vocabulary per funding scheme."""

    async def get_tags(self, user_id: str) -> FundingTags | None:
        """Stored tags, or None when the clinic never configured any."""
        ...

    async def save_tags(self, user_id: str, tags: FundingTags) -> None:
        """Store the clinic's tags."""
        ...
