# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (PMS Sync)
# Description: Symmetric encryption of stored PMS API keys.
# ============================================================================
"""Credential Vault.

AES-256-CTR with a key derived as SHA-256 of the configured secret and a
random 16-byte IV per value. Stored format: ``<iv_hex>:<ciphertext_hex>``.
Values written by earlier deployments with the same secret stay readable.
"""

import hashlib
import logging
import os

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ...domain.exceptions import CredentialVaultError

logger = logging.getLogger(__name__)

IV_SIZE = 16


class AesCtrCredentialVault:
    """Implements ICredentialVault."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Encryption secret must not be empty")
        self._key = hashlib.sha256(secret.encode("utf-8")).digest()

    def _cipher(self, iv: bytes) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CTR(iv))

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_SIZE)
        encryptor = self._cipher(iv).encryptor()
        ciphertext = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()
        return f"{iv.hex()}:{ciphertext.hex()}"

    def decrypt(self, token: str) -> str:
        iv_hex, sep, ciphertext_hex = (token or "").partition(":")
        if not sep or not iv_hex or not ciphertext_hex:
            raise CredentialVaultError("Invalid encrypted data format")
        try:
            iv = bytes.fromhex(iv_hex)
            ciphertext = bytes.fromhex(ciphertext_hex)
        except ValueError as e:
            raise CredentialVaultError("Invalid encrypted data format") from e
        if len(iv) != IV_SIZE:
            raise CredentialVaultError("Invalid encrypted data format")

        decryptor = self._cipher(iv).decryptor()
        plaintext = decryptor.update(ciphertext) + decryptor.finalize()
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.error("Stored credential did not decrypt to text - was the encryption secret rotated?")
            raise CredentialVaultError("Stored credential could not be decrypted") from e
