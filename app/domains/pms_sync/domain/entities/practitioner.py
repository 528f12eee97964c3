"""
Practitioner Entity for PMS Sync Domain
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Practitioner:
    """Practitioner listed by the PMS."""

    external_id: str
    first_name: str = ""
    last_name: str = ""
    display_name: str | None = None

    @property
    def name(self) -> str:
        """Name shown on appointments and cases."""
        if self.display_name and self.display_name.strip():
            return self.display_name.strip()
        return f"{self.first_name} {self.last_name}".strip()
