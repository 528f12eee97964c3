# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (PMS Sync)
# Description: Shared async HTTP plumbing for PMS REST clients.
# ============================================================================
"""Base PMS client.

Owns the httpx.AsyncClient lifecycle, retry policy, cancellation checks and
the mapping from HTTP failures to the PMS error taxonomy. Concrete clients
only describe auth, endpoints, pagination and field mapping.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from typing import Any

import httpx

from ...application.ports import CombinedFetchResult
from ...application.run_context import CancellationToken
from ...domain.entities import (
    Appointment,
    AppointmentTypeMapping,
    Patient,
    Practitioner,
    RawAppointmentType,
)
from ...domain.exceptions import PMSAuthError, PMSConnectionError, PMSResponseError
from ...domain.services import AppointmentTypeClassifier
from ...domain.value_objects import FundingTags, PMSType
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "ClinicPMSSync/1.0"


class BasePMSClient(ABC):
    """Async REST client base for PMS adapters.

    Subclasses set ``pms_type``, the connection-test endpoint and implement
    the catalogue/patient/appointment fetchers.
    """

    pms_type: PMSType
    supports_combined_fetch: bool = False

    connection_test_path: str = "/"
    connection_test_params: dict[str, Any] = {}

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 30.0,
        connection_test_timeout: float = 10.0,
        retry_policy: RetryPolicy | None = None,
        cancel_token: CancellationToken | None = None,
        max_pages: int = 50,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize client.

        Args:
            api_key: Plaintext PMS API key.
            base_url: API base URL.
            timeout: Request timeout in seconds.
            connection_test_timeout: Timeout for test_connection.
            retry_policy: Optional retry policy. Uses defaults if not provided.
            cancel_token: Run cancellation token.
            max_pages: Upper bound on pages fetched per listing.
            user_agent: User-Agent header value.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self._api_key = api_key.strip()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.connection_test_timeout = connection_test_timeout
        self.max_pages = max_pages
        self._user_agent = user_agent
        self._retry = retry_policy or RetryPolicy()
        self._cancel_token = cancel_token or CancellationToken()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    # =========================================================================
    # Connection management
    # =========================================================================

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {
                "Accept": "application/json",
                "User-Agent": self._user_agent,
                **self._auth_headers(),
            }
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BasePMSClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _auth_headers(self) -> dict[str, str]:
        """Headers carrying credentials."""
        return {}

    def _auth_params(self) -> dict[str, str]:
        """Query parameters carrying credentials."""
        return {}

    # =========================================================================
    # Request execution
    # =========================================================================

    async def _get(self, path: str, params: dict[str, Any] | None = None, timeout: float | None = None) -> Any:
        """GET a JSON resource under the retry policy."""
        return await self._retry.execute(
            self._execute_request,
            path,
            params,
            timeout,
            cancel_token=self._cancel_token,
            operation=f"{self.pms_type.display_name} GET {path.split('?')[0]}",
        )

    async def _execute_request(self, path: str, params: dict[str, Any] | None, timeout: float | None) -> Any:
        """Execute one attempt.

        Raises:
            PMSConnectionError: Network failure, timeout, 429 or 5xx.
            PMSAuthError: 401 or 403.
            PMSResponseError: Other 4xx or an unparseable body.
        """
        self._cancel_token.raise_if_cancelled()
        client = await self._get_client()
        query = {**self._auth_params(), **(params or {})}

        try:
            response = await client.get(
                path,
                params=query or None,
                timeout=httpx.Timeout(timeout) if timeout else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.TimeoutException as e:
            logger.error(f"{self.pms_type.display_name} request to {path} timed out")
            raise PMSConnectionError(
                self.pms_type, f"{self.pms_type.display_name} request timed out", original_error=e
            ) from e
        except httpx.RequestError as e:
            logger.error(f"{self.pms_type.display_name} request error calling {path}: {e}")
            raise PMSConnectionError(
                self.pms_type, f"Could not reach {self.pms_type.display_name}", original_error=e
            ) from e

        self._raise_for_status(response)

        try:
            payload = response.json()
        except ValueError as e:
            raise PMSResponseError(
                self.pms_type,
                f"{self.pms_type.display_name} returned a non-JSON response",
                upstream_status=response.status_code,
                original_error=e,
            ) from e

        return self._unwrap(payload)

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        if status in (401, 403):
            raise PMSAuthError(self.pms_type, self._auth_error_message(status), upstream_status=status)
        if status == 429 or status >= 500:
            raise PMSConnectionError(
                self.pms_type,
                f"{self.pms_type.display_name} is temporarily unavailable (HTTP {status})",
                upstream_status=status,
            )
        raise PMSResponseError(
            self.pms_type,
            f"{self.pms_type.display_name} rejected the request (HTTP {status})",
            upstream_status=status,
        )

    def _auth_error_message(self, status: int) -> str:
        if status == 401:
            return f"Invalid {self.pms_type.display_name} API key"
        return f"{self.pms_type.display_name} API key does not have the required permissions"

    def _unwrap(self, payload: Any) -> Any:
        """Strip a PMS-specific response envelope."""
        return payload

    # =========================================================================
    # Capability set
    # =========================================================================

    async def test_connection(self) -> bool:
        """Probe the connection-test endpoint.

        Auth and connectivity failures propagate; any other client error
        means the key is not usable here and yields False.
        """
        try:
            await self._get(
                self.connection_test_path,
                params=dict(self.connection_test_params),
                timeout=self.connection_test_timeout,
            )
        except PMSResponseError as e:
            logger.warning(f"{self.pms_type.display_name} connection test failed: {e.message}")
            return False
        logger.info(f"{self.pms_type.display_name} connection test succeeded")
        return True

    @abstractmethod
    async def get_practitioners(self) -> list[Practitioner]: ...

    @abstractmethod
    async def get_appointment_types(self) -> list[RawAppointmentType]: ...

    @abstractmethod
    async def get_patients(self, modified_since: datetime | None = None) -> list[Patient]: ...

    @abstractmethod
    async def get_patient_appointments(self, patient_id: str) -> list[Appointment]: ...

    async def get_patients_with_appointments(
        self,
        appointment_type_ids: Iterable[str],
        modified_since: datetime | None = None,
    ) -> CombinedFetchResult:
        raise NotImplementedError(f"{self.pms_type.display_name} does not support combined patient fetches")

    def classify_types(
        self,
        raw_types: Iterable[RawAppointmentType],
        tags: FundingTags,
    ) -> list[AppointmentTypeMapping]:
        return AppointmentTypeClassifier(tags).classify(raw_types)

    @classmethod
    def validate_api_key(cls, api_key: str) -> None:
        """Raise CredentialFormatError for a key this PMS cannot have issued."""
        raise NotImplementedError

    @classmethod
    def default_base_url(cls, api_key: str) -> str:
        raise NotImplementedError
