"""Logging setup shared by the API process"""
import logging
from pathlib import Path

from .config import settings


def configure_logging() -> None:
    """
    Configure root logging from settings

    Logs always go to stderr; LOG_FILE additionally appends to a file.
    """
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(Path(settings.log_file), mode='a'))

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
