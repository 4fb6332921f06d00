"""Logging setup shared by the API and the workers."""

import logging

from core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(log_level: str | None = None) -> None:
    """Configure the root logger from settings (or an explicit level)."""
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
