"""
Case Read-Model Port
"""

from datetime import datetime
from typing import Protocol, runtime_checkable

from ...domain.entities import CaseCounts
from ...domain.value_objects import PMSType


@runtime_checkable
class ICaseRepository(Protocol):
    """
    Case table maintenance.

    ``repopulate`` rebuilds every case of a connection in one call;
    ``count`` reads the persisted rows back so reported numbers always match
    what is stored.
    """

    async def repopulate(self, user_id: str, pms_type: PMSType, now: datetime) -> int:
        """Rebuild the case rows. Returns the number of cases written."""
        ...

    async def count(self, user_id: str, pms_type: PMSType | None = None) -> CaseCounts:
        """Scheme, action-needed and overdue counts from stored cases."""
        ...
