"""Test utilities and helpers."""

from tests.utils.assertions import assert_patient_funding, assert_single_sync_log
from tests.utils.builders import AppointmentBuilder, PatientBuilder
from tests.utils.factories import (
    create_catalog,
    create_mock_client,
    create_orchestrator_deps,
    create_practitioners,
)

__all__ = [
    # Builders
    "AppointmentBuilder",
    "PatientBuilder",
    # Factories
    "create_catalog",
    "create_practitioners",
    "create_mock_client",
    "create_orchestrator_deps",
    # Assertions
    "assert_single_sync_log",
    "assert_patient_funding",
]
