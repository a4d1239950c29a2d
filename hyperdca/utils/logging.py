"""Logging setup for the service."""

import logging

from hyperdca.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

NOISY_LOGGERS = ("urllib3", "apscheduler", "httpx")


def setup_logging(level: str | None = None):
    """Configure the root logger. Safe to call more than once."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
