# ============================================================================
# SCOPE: DOMAIN LAYER (PMS Sync)
# Description: Error taxonomy for PMS synchronization
# ============================================================================
"""PMS Sync domain exceptions.

Adapter errors carry a ``retryable`` flag read by the retry policy:
network failures, timeouts, 429 and 5xx responses are retryable, while
rejected credentials and malformed payloads are not.
"""

from typing import Any

from app.core.domain import (
    BusinessRuleViolationException,
    DomainException,
    IntegrationException,
    ValidationException,
)

from .value_objects import PMSType


class PMSError(IntegrationException):
    """Base class for failures talking to a PMS."""

    retryable: bool = False

    def __init__(
        self,
        pms_type: PMSType | str,
        message: str,
        upstream_status: int | None = None,
        original_error: Exception | None = None,
        code: str = "PMS_ERROR",
    ):
        self.pms_type = PMSType(pms_type)
        self.upstream_status = upstream_status
        details: dict[str, Any] = {"retryable": self.retryable}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        super().__init__(
            service=self.pms_type.value,
            message=message,
            original_error=original_error,
            code=code,
            details=details,
        )


class PMSConnectionError(PMSError):
    """Network failure, timeout or a transient upstream error (429/5xx)."""

    retryable = True
    status_code = 502

    def __init__(
        self,
        pms_type: PMSType | str,
        message: str,
        upstream_status: int | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(pms_type, message, upstream_status, original_error, code="PMS_CONNECTION_ERROR")


class PMSAuthError(PMSError):
    """The PMS rejected the credentials (401/403)."""

    retryable = False
    status_code = 401

    def __init__(self, pms_type: PMSType | str, message: str, upstream_status: int | None = None):
        super().__init__(pms_type, message, upstream_status, code="PMS_AUTH_ERROR")


class PMSResponseError(PMSError):
    """The PMS answered with something we cannot use."""

    retryable = False
    status_code = 502

    def __init__(
        self,
        pms_type: PMSType | str,
        message: str,
        upstream_status: int | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(pms_type, message, upstream_status, original_error, code="PMS_RESPONSE_ERROR")


class CredentialFormatError(ValidationException):
    """API key does not have the shape the PMS issues."""

    def __init__(self, pms_type: PMSType | str, message: str):
        self.pms_type = PMSType(pms_type)
        super().__init__(
            message,
            field="apiKey",
            details={"pms_type": self.pms_type.value},
            code="CREDENTIAL_FORMAT_ERROR",
        )


class PartialPersistenceError(DomainException):
    """A single record could not be written. Collected, never raised past the run."""

    def __init__(self, record_type: str, external_id: str, reason: str):
        self.record_type = record_type
        self.external_id = external_id
        self.reason = reason
        super().__init__(
            f"Failed to save {record_type} {external_id}: {reason}",
            "PARTIAL_PERSISTENCE_ERROR",
            {"record_type": record_type, "external_id": external_id},
        )


class ClassificationGapError(DomainException):
    """No appointment type matched any funding tag. Recorded as a warning only."""

    def __init__(self, pms_type: PMSType | str, type_count: int, wc_tags: tuple[str, ...], epc_tags: tuple[str, ...]):
        self.pms_type = PMSType(pms_type)
        super().__init__(
            f"None of {type_count} {self.pms_type.value} appointment types matched the funding tags",
            "CLASSIFICATION_GAP",
            {
                "pms_type": self.pms_type.value,
                "type_count": type_count,
                "wc_tags": list(wc_tags),
                "epc_tags": list(epc_tags),
            },
        )


class SyncInProgressError(BusinessRuleViolationException):
    """Another run for the same (user, pms_type) holds the sync lock."""

    def __init__(self, user_id: str, pms_type: PMSType | str):
        pms = PMSType(pms_type)
        super().__init__(
            rule="single_sync_per_connection",
            message=f"A {pms.value} sync is already running for this clinic",
            details={"pms_type": pms.value, "user_id": user_id},
            code="SYNC_IN_PROGRESS",
        )


class SyncDisabledError(BusinessRuleViolationException):
    """Sync has been paused for this connection."""

    def __init__(self, user_id: str, pms_type: PMSType | str):
        pms = PMSType(pms_type)
        super().__init__(
            rule="sync_enabled",
            message=f"{pms.display_name} sync is paused for this clinic",
            details={"pms_type": pms.value, "user_id": user_id},
            code="SYNC_DISABLED",
        )


class SyncCancelledError(DomainException):
    """The run was cancelled (client disconnected) before it finished."""

    status_code = 499

    def __init__(self, reason: str = "cancelled"):
        self.reason = reason
        super().__init__(f"Sync cancelled: {reason}", "SYNC_CANCELLED", {"reason": reason})


class CredentialVaultError(DomainException):
    """A stored credential could not be decrypted."""

    status_code = 500

    def __init__(self, message: str = "Invalid encrypted data format"):
        super().__init__(message, "CREDENTIAL_VAULT_ERROR")


class CredentialNotFoundError(DomainException):
    """No active credential is stored for (user, pms_type)."""

    status_code = 404

    def __init__(self, user_id: str, pms_type: PMSType | str):
        pms = PMSType(pms_type)
        super().__init__(
            f"No active {pms.display_name} credential is stored for this clinic",
            "CREDENTIAL_NOT_FOUND",
            {"pms_type": pms.value, "user_id": user_id},
        )
