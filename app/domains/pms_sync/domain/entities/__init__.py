"""
PMS Sync Domain Entities
"""

from .appointment import Appointment
from .appointment_type import AppointmentTypeMapping, RawAppointmentType, index_mappings
from .credential import PMSCredential
from .funding_case import CaseCounts, FundingCase
from .patient import Patient
from .practitioner import Practitioner
from .sync_control import SyncControl
from .sync_run import SyncRun

__all__ = [
    "Appointment",
    "AppointmentTypeMapping",
    "RawAppointmentType",
    "index_mappings",
    "PMSCredential",
    "CaseCounts",
    "FundingCase",
    "Patient",
    "Practitioner",
    "SyncControl",
    "SyncRun",
]
