"""
PMS Sync Domain Services
"""

from .appointment_type_classifier import AppointmentTypeClassifier
from .case_builder import UNKNOWN_PRACTITIONER, build_case, case_standing, count_cases
from .quota_calculator import (
    FundingQuotaCalculator,
    PatientFunding,
    SchemeUsage,
    calculate_epc_usage,
    calculate_wc_usage,
    derive_patient_type,
    scheme_appointments,
)

__all__ = [
    "AppointmentTypeClassifier",
    "UNKNOWN_PRACTITIONER",
    "build_case",
    "case_standing",
    "count_cases",
    "FundingQuotaCalculator",
    "PatientFunding",
    "SchemeUsage",
    "calculate_epc_usage",
    "calculate_wc_usage",
    "derive_patient_type",
    "scheme_appointments",
]
