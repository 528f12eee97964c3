# ============================================================================
# SCOPE: INFRASTRUCTURE LAYER (PMS Sync)
# Description: PMS adapters module.
# ============================================================================
"""PMS Adapters.

Async REST clients for the supported Practice Management Systems.

Components:
- BasePMSClient: Shared HTTP, retry and error mapping
- ClinikoClient / NookalClient / HalaxyClient: PMS variants
- PMSClientFactory: Creates clients by PMSType
- RetryPolicy: Bounded exponential backoff
"""

from .base_client import BasePMSClient
from .cliniko import ClinikoClient
from .factory import PMSClientFactory
from .halaxy import HalaxyClient
from .nookal import NookalClient
from .retry import RetryPolicy

__all__ = [
    "BasePMSClient",
    "ClinikoClient",
    "HalaxyClient",
    "NookalClient",
    "PMSClientFactory",
    "RetryPolicy",
]
