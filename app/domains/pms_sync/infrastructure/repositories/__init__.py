"""
PMS Sync Infrastructure - SQLAlchemy Repositories

Repository implementations for the PMS sync ports.
"""

from .bulk_upsert import BulkUpserter
from .case_repository import SQLAlchemyCaseRepository
from .catalog_repository import SQLAlchemyAppointmentTypeRepository, SQLAlchemyFundingTagRepository
from .credential_repository import SQLAlchemyCredentialRepository
from .record_repositories import (
    SQLAlchemyAppointmentRepository,
    SQLAlchemyPatientRepository,
    SQLAlchemyPractitionerRepository,
)
from .sync_log_repository import SQLAlchemySyncControlRepository, SQLAlchemySyncLogRepository

__all__ = [
    "BulkUpserter",
    "SQLAlchemyAppointmentRepository",
    "SQLAlchemyAppointmentTypeRepository",
    "SQLAlchemyCaseRepository",
    "SQLAlchemyCredentialRepository",
    "SQLAlchemyFundingTagRepository",
    "SQLAlchemyPatientRepository",
    "SQLAlchemyPractitionerRepository",
    "SQLAlchemySyncControlRepository",
    "SQLAlchemySyncLogRepository",
]
