# ============================================================================
# SCOPE: APPLICATION LAYER (PMS Sync)
# Description: Use case for verifying and storing a PMS credential.
# ============================================================================
"""Connect PMS Use Case.

Validates the API key, checks it against the PMS and stores it encrypted.
Connecting one PMS deactivates the clinic's credentials for every other PMS.
"""

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from ...domain.entities import PMSCredential, SyncControl
from ...domain.exceptions import PMSResponseError
from ..dto import ConnectPMSRequest, ConnectPMSResult

if TYPE_CHECKING:
    from ..ports import (
        ICredentialRepository,
        ICredentialVault,
        IPMSClientFactory,
        ISyncControlRepository,
        IUnitOfWork,
    )

logger = logging.getLogger(__name__)


class ConnectPMSUseCase:
    """Use case for connecting a clinic to a PMS."""

    def __init__(
        self,
        client_factory: "IPMSClientFactory",
        credential_repository: "ICredentialRepository",
        sync_control_repository: "ISyncControlRepository",
        vault: "ICredentialVault",
        unit_of_work: "IUnitOfWork",
        default_sync_frequency_hours: int = 6,
    ) -> None:
        """Initialize use case.

        Args:
            client_factory: Builds the PMS client for the key under test.
            credential_repository: Credential storage.
            sync_control_repository: Pause/resume state per connection.
            vault: Encrypts the key before it is stored.
            unit_of_work: Transaction boundary.
            default_sync_frequency_hours: Frequency of a newly created sync control.
        """
        self._factory = client_factory
        self._credentials = credential_repository
        self._controls = sync_control_repository
        self._vault = vault
        self._uow = unit_of_work
        self._default_frequency = default_sync_frequency_hours

    async def execute(self, request: ConnectPMSRequest) -> ConnectPMSResult:
        """Execute the connect use case.

        Raises:
            CredentialFormatError: If the key cannot belong to the PMS.
            PMSAuthError: If the PMS rejects the key.
            PMSConnectionError: If the PMS cannot be reached.
            PMSResponseError: If the connection test is refused.
        """
        pms_type = request.pms_type
        logger.info(f"Connecting {pms_type.value} for user {request.user_id}")

        self._factory.validate_credentials(pms_type, request.api_key)

        client = self._factory.create_client(pms_type, request.api_key)
        try:
            connected = await client.test_connection()
        finally:
            await client.close()
        if not connected:
            raise PMSResponseError(pms_type, f"{pms_type.display_name} rejected the connection test")

        api_url = self._factory.api_url_for(pms_type, request.api_key)
        await self._credentials.save(
            PMSCredential(
                user_id=request.user_id,
                pms_type=pms_type,
                api_key_encrypted=self._vault.encrypt(request.api_key),
                api_url=api_url,
                clinic_id=request.clinic_id,
                is_active=True,
            )
        )
        deactivated = await self._credentials.deactivate_others(request.user_id, pms_type)
        if deactivated:
            logger.info(f"Deactivated {deactivated} other PMS credentials for user {request.user_id}")

        if await self._controls.get(request.user_id, pms_type) is None:
            await self._controls.save(
                SyncControl(
                    user_id=request.user_id,
                    pms_type=pms_type,
                    is_enabled=True,
                    sync_frequency_hours=self._default_frequency,
                    next_sync_at=datetime.now(UTC),
                )
            )

        await self._uow.commit()
        logger.info(f"{pms_type.display_name} connected for user {request.user_id}")
        return ConnectPMSResult(connected=True, pms_type=pms_type, api_url=api_url)
