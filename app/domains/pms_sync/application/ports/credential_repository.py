"""
Credential Repository Port
"""

from typing import Protocol, runtime_checkable

from ...domain.entities import PMSCredential
from ...domain.value_objects import PMSType


@runtime_checkable
class ICredentialRepository(Protocol):
    """
    Stored PMS credentials.

    One credential per (user_id, pms_type); saving replaces the existing one.
    """

    async def get_active(self, user_id: str, pms_type: PMSType) -> PMSCredential | None:
        """
        Get the active credential for a connection.

        Args:
            user_id: Clinic user id
            pms_type: PMS of the connection

        Returns:
            Credential if one is stored and active, None otherwise
        """
        ...

    async def save(self, credential: PMSCredential) -> PMSCredential:
        """Insert or replace the credential for (user_id, pms_type)."""
        ...

    async def deactivate_others(self, user_id: str, keep: PMSType) -> int:
        """
        Deactivate the user's credentials for every other PMS.

        Returns:
            Number of credentials deactivated
        """
        ...
