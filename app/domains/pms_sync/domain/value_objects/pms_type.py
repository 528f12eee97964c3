"""
PMS type value object.
"""

from app.core.domain import StatusEnum


class PMSType(StatusEnum):
    """Supported Practice Management Systems."""

    CLINIKO = "cliniko"
    NOOKAL = "nookal"
    HALAXY = "halaxy"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()
