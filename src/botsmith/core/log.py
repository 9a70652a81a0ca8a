"""
botsmith.core.log - Structured Logging Setup
==============================================

Every module logs through structlog:

    logger = structlog.get_logger()
    self._logger = logger.bind(component="build_invoker")
    self._logger.info("build_started", artifact_id=artifact.id)

configure_logging() installs a processor chain and a level filter once per
process. It is called by the Botsmith facade with ``config.log_level``.
"""

from __future__ import annotations

import logging

import structlog


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog for the whole process.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=False,
    )

    # The AWS SDK is chatty at INFO.
    for name in ("boto3", "botocore", "urllib3", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)
