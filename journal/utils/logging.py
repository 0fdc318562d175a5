"""Process-wide logging setup."""

import logging

from journal.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

# Libraries that log every request or tick at INFO
_NOISY_LOGGERS = ("httpx", "apscheduler", "telegram", "websocket", "urllib3")


def setup_logging(level: str | None = None):
    """Configure the root logger once, at application startup."""
    name = (level or settings.log_level).upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO), format=LOG_FORMAT)
    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)
