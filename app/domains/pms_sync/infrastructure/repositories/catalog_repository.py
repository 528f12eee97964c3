"""
Appointment Type and Funding Tag Repository Implementations
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from ...application.ports import IAppointmentTypeRepository, IFundingTagRepository
from ...domain.entities import AppointmentTypeMapping, RawAppointmentType
from ...domain.value_objects import FundingScheme, FundingTags, PMSType
from ..persistence.sqlalchemy.models import (
    AppointmentTypeCatalogModel,
    AppointmentTypeModel,
    ClinicFundingTagModel,
)

logger = logging.getLogger(__name__)


class SQLAlchemyAppointmentTypeRepository(IAppointmentTypeRepository):
    """
    Catalogue and mapping sets are replaced with delete-then-insert inside the
    caller's transaction, so readers never observe a partial set.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def replace_catalog(self, user_id: str, pms_type: PMSType, raw_types: list[RawAppointmentType]) -> int:
        await self.session.execute(
            delete(AppointmentTypeCatalogModel).where(
                AppointmentTypeCatalogModel.user_id == user_id,
                AppointmentTypeCatalogModel.pms_type == pms_type.value,
            )
        )
        unique = {t.external_id: t for t in raw_types}
        self.session.add_all(
            AppointmentTypeCatalogModel(
                user_id=user_id,
                pms_type=pms_type.value,
                external_id=t.external_id,
                name=t.name,
            )
            for t in unique.values()
        )
        await self.session.flush()
        logger.info(f"Stored {len(unique)} {pms_type.value} appointment types for user {user_id}")
        return len(unique)

    async def get_catalog(self, user_id: str, pms_type: PMSType) -> list[RawAppointmentType]:
        result = await self.session.execute(
            select(AppointmentTypeCatalogModel.external_id, AppointmentTypeCatalogModel.name)
            .where(
                AppointmentTypeCatalogModel.user_id == user_id,
                AppointmentTypeCatalogModel.pms_type == pms_type.value,
            )
            .order_by(AppointmentTypeCatalogModel.id)
        )
        return [RawAppointmentType(external_id=external_id, name=name) for external_id, name in result.all()]

    async def replace_mappings(
        self, user_id: str, pms_type: PMSType, mappings: list[AppointmentTypeMapping]
    ) -> int:
        await self.session.execute(
            delete(AppointmentTypeModel).where(
                AppointmentTypeModel.user_id == user_id,
                AppointmentTypeModel.pms_type == pms_type.value,
            )
        )
        unique = {m.external_id: m for m in mappings}
        self.session.add_all(
            AppointmentTypeModel(
                user_id=user_id,
                pms_type=pms_type.value,
                appointment_id=m.external_id,
                appointment_name=m.name,
                code=m.code.value,
            )
            for m in unique.values()
        )
        await self.session.flush()
        return len(unique)

    async def get_mappings(self, user_id: str, pms_type: PMSType) -> list[AppointmentTypeMapping]:
        result = await self.session.execute(
            select(
                AppointmentTypeModel.appointment_id,
                AppointmentTypeModel.appointment_name,
                AppointmentTypeModel.code,
            ).where(
                AppointmentTypeModel.user_id == user_id,
                AppointmentTypeModel.pms_type == pms_type.value,
            )
        )
        return [
            AppointmentTypeMapping(external_id=external_id, name=name, code=FundingScheme(code))
            for external_id, name, code in result.all()
        ]


class SQLAlchemyFundingTagRepository(IFundingTagRepository):
    """SQLAlchemy implementation of funding tag repository."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_tags(self, user_id: str) -> FundingTags | None:
        result = await self.session.execute(
            select(ClinicFundingTagModel).where(ClinicFundingTagModel.user_id == user_id)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return FundingTags(wc_tags=tuple(model.wc_tags or ()), epc_tags=tuple(model.epc_tags or ()))

    async def save_tags(self, user_id: str, tags: FundingTags) -> None:
        stmt = insert(ClinicFundingTagModel).values(
            user_id=user_id,
            wc_tags=list(tags.wc_tags),
            epc_tags=list(tags.epc_tags),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={
                "wc_tags": list(tags.wc_tags),
                "epc_tags": list(tags.epc_tags),
                "updated_at": datetime.now(UTC),
            },
        )
        await self.session.execute(stmt)
