"""
PMS Credential Repository Implementation

SQLAlchemy implementation of ICredentialRepository.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ...application.ports import ICredentialRepository
from ...domain.entities import PMSCredential
from ...domain.value_objects import PMSType
from ..persistence.sqlalchemy.models import PMSApiKeyModel

logger = logging.getLogger(__name__)


class SQLAlchemyCredentialRepository(ICredentialRepository):
    """
    SQLAlchemy implementation of credential repository.

    Only the encrypted key ever reaches this layer.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize repository.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    @staticmethod
    def _to_entity(model: PMSApiKeyModel) -> PMSCredential:
        return PMSCredential(
            id=model.id,
            user_id=model.user_id,
            pms_type=PMSType(model.pms_type),
            api_key_encrypted=model.api_key_encrypted,
            api_url=model.api_url,
            clinic_id=model.clinic_id,
            is_active=model.is_active,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    async def get_active(self, user_id: str, pms_type: PMSType) -> PMSCredential | None:
        result = await self.session.execute(
            select(PMSApiKeyModel).where(
                PMSApiKeyModel.user_id == user_id,
                PMSApiKeyModel.pms_type == pms_type.value,
                PMSApiKeyModel.is_active.is_(True),
            )
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def save(self, credential: PMSCredential) -> PMSCredential:
        now = datetime.now(UTC)
        stmt = insert(PMSApiKeyModel).values(
            user_id=credential.user_id,
            pms_type=credential.pms_type.value,
            api_key_encrypted=credential.api_key_encrypted,
            api_url=credential.api_url,
            clinic_id=credential.clinic_id,
            is_active=credential.is_active,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "pms_type"],
            set_={
                "api_key_encrypted": credential.api_key_encrypted,
                "api_url": credential.api_url,
                "clinic_id": credential.clinic_id,
                "is_active": credential.is_active,
                "updated_at": now,
            },
        ).returning(PMSApiKeyModel.id)
        result = await self.session.execute(stmt)
        credential.id = result.scalar_one()
        credential.updated_at = now
        logger.info(f"Stored {credential.pms_type.value} credential for user {credential.user_id}")
        return credential

    async def deactivate_others(self, user_id: str, keep: PMSType) -> int:
        result = await self.session.execute(
            update(PMSApiKeyModel)
            .where(
                PMSApiKeyModel.user_id == user_id,
                PMSApiKeyModel.pms_type != keep.value,
                PMSApiKeyModel.is_active.is_(True),
            )
            .values(is_active=False, updated_at=datetime.now(UTC))
        )
        return result.rowcount or 0
