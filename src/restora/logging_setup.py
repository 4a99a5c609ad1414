"""Logging initialization helpers."""

import logging
from logging.handlers import RotatingFileHandler

from restora.config import Settings


def setup_logging(settings: Settings) -> None:
    """Configure the `restora` logger tree from Settings.

    Other loggers (uvicorn, celery) are left alone. Calling this more than
    once is a no-op.
    """
    logger = logging.getLogger("restora")
    if getattr(logger, "_restora_configured", False):
        return

    level = getattr(logging, str(settings.log_level or "INFO").upper(), logging.INFO)
    formatter = logging.Formatter(fmt=settings.log_format, datefmt=settings.log_datefmt)

    stream = logging.StreamHandler()
    stream.setLevel(level)
    stream.setFormatter(formatter)
    handlers: list[logging.Handler] = [stream]

    if settings.log_file:
        file_path = settings.log_file.expanduser()
        file_path.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(
            file_path,
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
        fh.setLevel(level)
        fh.setFormatter(formatter)
        handlers.append(fh)

    logger.setLevel(level)
    logger.handlers = handlers
    logger.propagate = False
    setattr(logger, "_restora_configured", True)
