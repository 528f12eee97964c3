"""PMS Sync application services."""

from .funding_service import FundingRefreshService

__all__ = ["FundingRefreshService"]
