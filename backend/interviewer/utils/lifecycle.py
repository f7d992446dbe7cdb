# /interviewer/utils/lifecycle.py

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from interviewer.config.settings import settings
from interviewer.services.db_service import db_service
from interviewer.utils.alerting import alerting_service
from interviewer.utils.logging import setup_logging

# This file manages the application's lifespan: logging, error tracking and
# indexes on startup, connection cleanup on shutdown.

logger = logging.getLogger(__name__)


def setup_sentry() -> bool:
    if not settings.sentry_dsn:
        return False
    try:
        import sentry_sdk
        from sentry_sdk.integrations.fastapi import FastApiIntegration
        from sentry_sdk.integrations.httpx import HttpxIntegration
        from sentry_sdk.integrations.pymongo import PyMongoIntegration

        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.sentry_environment,
            traces_sample_rate=0.1,
            integrations=[
                FastApiIntegration(),
                HttpxIntegration(),
                PyMongoIntegration(),
            ],
            attach_stacktrace=True,
            send_default_pii=False,
        )
        logger.info(f"Sentry initialized for environment '{settings.sentry_environment}'")
        return True
    except Exception as e:
        logger.error(f"Sentry initialization failed: {e}")
        return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    setup_logging()
    setup_sentry()

    logger.info("Application starting up...")
    await db_service.create_indexes()
    logger.info("Application startup complete. Ready to accept requests.")

    yield

    logger.info("Application shutting down...")
    await alerting_service.cleanup()
    if db_service.client:
        db_service.client.close()
