"""Cliniko adapter."""

from .client import ClinikoClient, cliniko_base_url, extract_region

__all__ = ["ClinikoClient", "cliniko_base_url", "extract_region"]
