"""Halaxy adapter."""

from .client import HALAXY_API_URL, HalaxyClient

__all__ = ["HALAXY_API_URL", "HalaxyClient"]
