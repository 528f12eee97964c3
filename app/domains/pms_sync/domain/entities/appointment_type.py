"""
Appointment type catalogue entries and their funding classification.
"""

from dataclasses import dataclass

from ..value_objects import FundingScheme


@dataclass(frozen=True)
class RawAppointmentType:
    """Appointment type exactly as listed by the PMS."""

    external_id: str
    name: str


@dataclass(frozen=True)
class AppointmentTypeMapping:
    """Appointment type matched to a funding scheme by the clinic's tags."""

    external_id: str
    name: str
    code: FundingScheme


def index_mappings(mappings: list[AppointmentTypeMapping]) -> dict[str, FundingScheme]:
    """Index mappings by external type id."""
    return {mapping.external_id: mapping.code for mapping in mappings}
