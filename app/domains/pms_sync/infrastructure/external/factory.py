# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (PMS Sync)
# Description: PMS client factory with an extensible adapter registry.
# ============================================================================
"""PMS Client Factory.

Maps PMSType to adapter classes. New adapters are added by registering
them, without changing the factory or its callers.

Usage:
    factory = PMSClientFactory.from_settings(get_settings())
    factory.validate_credentials(PMSType.CLINIKO, api_key)
    async with factory.create_client(PMSType.CLINIKO, api_key) as client:
        await client.test_connection()
"""

import logging

import httpx

from app.config.settings import Settings
from app.core.domain import ValidationException

from ...application.run_context import CancellationToken
from ...domain.value_objects import PMSType
from .base_client import DEFAULT_USER_AGENT, BasePMSClient
from .cliniko import ClinikoClient, cliniko_base_url
from .halaxy import HalaxyClient
from .nookal import NookalClient
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


class PMSClientFactory:
    """Creates PMS clients keyed on PMSType.

    Implements IPMSClientFactory.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        connection_test_timeout: float = 10.0,
        retry_policy: RetryPolicy | None = None,
        max_pages: int = 50,
        user_agent: str = DEFAULT_USER_AGENT,
        cliniko_default_region: str = "au2",
        base_urls: dict[PMSType, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize factory.

        Args:
            timeout: Request timeout passed to every client.
            connection_test_timeout: Timeout for connection tests.
            retry_policy: Retry policy shared by created clients.
            max_pages: Pagination cap for listings.
            user_agent: User-Agent header value.
            cliniko_default_region: Region used when a key carries none.
            base_urls: Fixed base URL overrides per PMS.
            transport: Optional httpx transport (tests).
        """
        self.timeout = timeout
        self.connection_test_timeout = connection_test_timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_pages = max_pages
        self.user_agent = user_agent
        self.cliniko_default_region = cliniko_default_region
        self._base_urls = dict(base_urls or {})
        self._transport = transport
        self._registry: dict[PMSType, type[BasePMSClient]] = {
            PMSType.CLINIKO: ClinikoClient,
            PMSType.NOOKAL: NookalClient,
            PMSType.HALAXY: HalaxyClient,
        }

    @classmethod
    def from_settings(cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> "PMSClientFactory":
        return cls(
            timeout=settings.PMS_REQUEST_TIMEOUT,
            connection_test_timeout=settings.PMS_CONNECTION_TEST_TIMEOUT,
            retry_policy=RetryPolicy.from_settings(settings),
            max_pages=settings.PMS_MAX_PAGES,
            user_agent=settings.PMS_USER_AGENT,
            cliniko_default_region=settings.CLINIKO_DEFAULT_REGION,
            base_urls={
                PMSType.NOOKAL: settings.NOOKAL_API_URL,
                PMSType.HALAXY: settings.HALAXY_API_URL,
            },
            transport=transport,
        )

    def register(self, pms_type: PMSType, client_class: type[BasePMSClient]) -> "PMSClientFactory":
        """Register (or replace) the adapter for a PMS.

        Returns:
            Self for method chaining.
        """
        self._registry[PMSType(pms_type)] = client_class
        return self

    def supported_types(self) -> list[PMSType]:
        return list(self._registry.keys())

    def _client_class(self, pms_type: PMSType | str) -> type[BasePMSClient]:
        try:
            return self._registry[PMSType(pms_type)]
        except (KeyError, ValueError) as e:
            raise ValidationException(f"Unsupported PMS type: {pms_type}", field="pmsType") from e

    def validate_credentials(self, pms_type: PMSType, api_key: str) -> None:
        self._client_class(pms_type).validate_api_key(api_key)

    def api_url_for(self, pms_type: PMSType, api_key: str) -> str:
        pms_type = PMSType(pms_type)
        if pms_type in self._base_urls:
            return self._base_urls[pms_type]
        if pms_type == PMSType.CLINIKO:
            return cliniko_base_url(api_key, self.cliniko_default_region)
        return self._client_class(pms_type).default_base_url(api_key)

    def create_client(
        self,
        pms_type: PMSType,
        api_key: str,
        cancel_token: CancellationToken | None = None,
    ) -> BasePMSClient:
        client_class = self._client_class(pms_type)
        base_url = self.api_url_for(pms_type, api_key)
        logger.debug(f"Creating {client_class.__name__} for {base_url}")
        return client_class(
            api_key=api_key,
            base_url=base_url,
            timeout=self.timeout,
            connection_test_timeout=self.connection_test_timeout,
            retry_policy=self.retry_policy,
            cancel_token=cancel_token,
            max_pages=self.max_pages,
            user_agent=self.user_agent,
            transport=self._transport,
        )
