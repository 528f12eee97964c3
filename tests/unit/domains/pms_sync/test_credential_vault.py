"""Unit tests for AesCtrCredentialVault."""

import hashlib

import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from app.domains.pms_sync.domain.exceptions import CredentialVaultError
from app.domains.pms_sync.infrastructure.security import AesCtrCredentialVault

SECRET = "test-encryption-secret"


@pytest.fixture
def vault() -> AesCtrCredentialVault:
    return AesCtrCredentialVault(SECRET)


class TestCredentialVault:
    """Tests for encrypting and decrypting stored API keys."""

    def test_roundtrip(self, vault) -> None:
        token = vault.encrypt("MS0xLWFiY2RlZg-au2")
        assert vault.decrypt(token) == "MS0xLWFiY2RlZg-au2"

    def test_storage_format(self, vault) -> None:
        """Should store a 16-byte hex IV and hex ciphertext separated by a colon."""
        iv_hex, ciphertext_hex = vault.encrypt("key").split(":")
        assert len(bytes.fromhex(iv_hex)) == 16
        assert len(bytes.fromhex(ciphertext_hex)) == 3

    def test_random_iv_per_value(self, vault) -> None:
        assert vault.encrypt("same") != vault.encrypt("same")

    def test_decrypts_values_from_other_writers(self, vault) -> None:
        """Should read AES-256-CTR values keyed by SHA-256 of the secret."""
        iv = bytes(range(16))
        key = hashlib.sha256(SECRET.encode()).digest()
        encryptor = Cipher(algorithms.AES(key), modes.CTR(iv)).encryptor()
        ciphertext = encryptor.update(b"legacy-key") + encryptor.finalize()

        assert vault.decrypt(f"{iv.hex()}:{ciphertext.hex()}") == "legacy-key"

    def test_another_instance_with_same_secret(self, vault) -> None:
        assert AesCtrCredentialVault(SECRET).decrypt(vault.encrypt("k")) == "k"

    @pytest.mark.parametrize("token", ["", "no-separator", ":abcd", "zz:abcd", "00ff:abcd"])
    def test_invalid_format(self, vault, token) -> None:
        """Should raise CredentialVaultError for malformed stored values."""
        with pytest.raises(CredentialVaultError):
            vault.decrypt(token)

    def test_empty_secret_rejected(self) -> None:
        with pytest.raises(ValueError):
            AesCtrCredentialVault("")
