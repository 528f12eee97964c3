"""Nookal adapter."""

from .client import NOOKAL_API_URL, NookalClient

__all__ = ["NOOKAL_API_URL", "NookalClient"]
