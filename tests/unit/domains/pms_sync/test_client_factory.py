"""Unit tests for PMSClientFactory."""

import pytest

from app.config.settings import get_settings
from app.core.domain import ValidationException
from app.domains.pms_sync.application.run_context import CancellationToken
from app.domains.pms_sync.domain.exceptions import CredentialFormatError
from app.domains.pms_sync.domain.value_objects import PMSType
from app.domains.pms_sync.infrastructure.external import PMSClientFactory
from app.domains.pms_sync.infrastructure.external.cliniko import ClinikoClient
from app.domains.pms_sync.infrastructure.external.halaxy import HalaxyClient
from app.domains.pms_sync.infrastructure.external.nookal import NookalClient


@pytest.fixture
def factory() -> PMSClientFactory:
    return PMSClientFactory.from_settings(get_settings())


class TestPMSClientFactory:
    """Tests for adapter selection keyed on PMSType."""

    def test_supported_types(self, factory) -> None:
        assert set(factory.supported_types()) == {PMSType.CLINIKO, PMSType.NOOKAL, PMSType.HALAXY}

    @pytest.mark.parametrize(
        ("pms_type", "client_class"),
        [(PMSType.CLINIKO, ClinikoClient), (PMSType.NOOKAL, NookalClient), (PMSType.HALAXY, HalaxyClient)],
    )
    def test_creates_adapter(self, factory, pms_type, client_class) -> None:
        token = CancellationToken()
        client = factory.create_client(pms_type, "MS0xLWFiY2RlZg-au3", token)
        assert isinstance(client, client_class)
        assert client.pms_type == pms_type
        assert client._cancel_token is token

    def test_cliniko_url_follows_key_region(self, factory) -> None:
        assert factory.api_url_for(PMSType.CLINIKO, "abc-uk1") == "https://api.uk1.cliniko.com/v1"

    def test_fixed_urls_from_settings(self, factory) -> None:
        settings = get_settings()
        assert factory.api_url_for(PMSType.NOOKAL, "k") == settings.NOOKAL_API_URL
        assert factory.api_url_for(PMSType.HALAXY, "k") == settings.HALAXY_API_URL

    def test_validate_credentials_delegates_to_adapter(self, factory) -> None:
        with pytest.raises(CredentialFormatError):
            factory.validate_credentials(PMSType.CLINIKO, "missing-region-!!")
        factory.validate_credentials(PMSType.HALAXY, "any-token")

    def test_unknown_pms(self, factory) -> None:
        with pytest.raises(ValidationException):
            factory.create_client("practice-better", "k")

    def test_register_replaces_adapter(self, factory) -> None:
        """Should let a new adapter be plugged in without changing callers."""

        class SandboxNookal(NookalClient):
            pass

        factory.register(PMSType.NOOKAL, SandboxNookal)
        assert isinstance(factory.create_client(PMSType.NOOKAL, "k"), SandboxNookal)
