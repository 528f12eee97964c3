"""
PMS Sync Infrastructure - SQLAlchemy persistence
"""

from .models import (
    AppointmentModel,
    AppointmentTypeCatalogModel,
    AppointmentTypeModel,
    CaseModel,
    ClinicFundingTagModel,
    PatientModel,
    PMSApiKeyModel,
    PractitionerModel,
    SyncControlModel,
    SyncLogModel,
)
from .unit_of_work import SQLAlchemyUnitOfWork

__all__ = [
    "AppointmentModel",
    "AppointmentTypeCatalogModel",
    "AppointmentTypeModel",
    "CaseModel",
    "ClinicFundingTagModel",
    "PatientModel",
    "PMSApiKeyModel",
    "PractitionerModel",
    "SyncControlModel",
    "SyncLogModel",
    "SQLAlchemyUnitOfWork",
]
