"""Credential encryption."""

from .vault import AesCtrCredentialVault

__all__ = ["AesCtrCredentialVault"]
