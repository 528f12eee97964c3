"""
PMS Sync Ports

Interfaces (ports) for the PMS sync domain following Clean Architecture.
"""

from .case_repository import ICaseRepository
from .catalog_repository import IAppointmentTypeRepository, IFundingTagRepository
from .credential_repository import ICredentialRepository
from .infrastructure_ports import ICredentialVault, ISyncLock, IUnitOfWork
from .pms_client import CombinedFetchResult, IPMSClient, IPMSClientFactory, PatientWithAppointments
from .record_repositories import (
    BulkWriteResult,
    IAppointmentRepository,
    IPatientRepository,
    IPractitionerRepository,
)
from .sync_log_repository import ISyncControlRepository, ISyncLogRepository

__all__ = [
    "ICaseRepository",
    "IAppointmentTypeRepository",
    "IFundingTagRepository",
    "ICredentialRepository",
    "ICredentialVault",
    "ISyncLock",
    "IUnitOfWork",
    "CombinedFetchResult",
    "IPMSClient",
    "IPMSClientFactory",
    "PatientWithAppointments",
    "BulkWriteResult",
    "IAppointmentRepository",
    "IPatientRepository",
    "IPractitionerRepository",
    "ISyncControlRepository",
    "ISyncLogRepository",
]
