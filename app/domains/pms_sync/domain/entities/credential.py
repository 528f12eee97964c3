"""
PMS Credential Entity
"""

from dataclasses import dataclass

from app.core.domain import Entity

from ..value_objects import PMSType


@dataclass
class PMSCredential(Entity[int]):
    """
    Stored PMS API key for one (user, pms_type).

    The key is only ever held encrypted; see ICredentialVault.
    """

    user_id: str = ""
    pms_type: PMSType = PMSType.CLINIKO
    api_key_encrypted: str = ""
    api_url: str | None = None
    clinic_id: str | None = None
    is_active: bool = True
