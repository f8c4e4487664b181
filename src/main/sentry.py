import logging
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from loggers import get_logger
from src.main.config import config

logger = get_logger(__name__)

SCRUBBED = "[Filtered]"
SENSITIVE_HEADERS = {"authorization", "cookie"}
SENSITIVE_BODY_KEYS = {"password", "refresh_token", "access_token"}

_sentry_initialized = False


def scrub_event(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any]:
    """Strip credentials from request data before an event leaves the process."""
    request = event.get("request") or {}

    headers = request.get("headers")
    if isinstance(headers, dict):
        for key in headers:
            if key.lower() in SENSITIVE_HEADERS:
                headers[key] = SCRUBBED

    data = request.get("data")
    if isinstance(data, dict):
        for key in data:
            if key in SENSITIVE_BODY_KEYS:
                data[key] = SCRUBBED

    return event


def init_sentry() -> None:
    """
    Initialize the Sentry client once using environment variables.
    """
    global _sentry_initialized

    if _sentry_initialized:
        return

    if config.app.DEBUG or config.app.TESTING:
        logger.info("DEBUG/TESTING enabled. Skipping Sentry initialization.")
        return

    if not config.sentry.SENTRY_ENABLED or not config.sentry.SENTRY_DSN:
        logger.info("Sentry disabled or DSN empty. Skipping Sentry initialization.")
        return

    sentry_sdk.init(
        dsn=config.sentry.SENTRY_DSN,
        environment=config.sentry.SENTRY_ENV,
        release=config.app.VERSION,
        send_default_pii=False,
        before_send=scrub_event,
        integrations=[
            CeleryIntegration(),
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.CRITICAL,
            ),
        ],
    )
    _sentry_initialized = True
    logger.info("Sentry initialized.")
