"""
Application entry point.

Configures logging and Sentry, then builds the app through the factory.
Run with ``uvicorn app.main:app``.
"""

import logging

import sentry_sdk

from app.config.settings import get_settings
from app.core.app_factory import create_app

logging.basicConfig(
    level=logging.DEBUG if get_settings().DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
# httpx logs every PMS request URL at INFO, and Nookal URLs carry the API key
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)
settings = get_settings()

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        send_default_pii=False,
        environment=settings.ENVIRONMENT,
        release=f"pms-sync@{settings.VERSION}",
    )
    logger.info("Sentry error tracking enabled")

app = create_app()

if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting {settings.PROJECT_NAME} in {settings.ENVIRONMENT} mode")
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8001,
        reload=settings.DEBUG,
    )
