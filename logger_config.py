"""Logging setup shared by the store, draft, expiry and location modules.

Each module writes to its own rotating file under ``settings.LOG_DIR`` and
echoes to the console at ``settings.LOG_LEVEL``.
"""

import logging
from logging.handlers import RotatingFileHandler
import os

from config import settings

LOG_DIR = settings.LOG_DIR
os.makedirs(LOG_DIR, exist_ok=True)

LOG_FORMAT = '[%(asctime)s] %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


def _configured_level() -> int:
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logger(name: str, log_file: str = 'reminders.log') -> logging.Logger:
    """Return the logger for a reminder module, attaching handlers once.

    Args:
        name: Module name, normally ``__name__``
        log_file: File under LOG_DIR, e.g. 'store.log' or 'expiry.log'

    Returns:
        The logger, writing to ``log_file`` and the console
    """
    logger = logging.getLogger(name)

    # Handlers already attached by an earlier import
    if logger.handlers:
        return logger

    level = _configured_level()
    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers = (
        RotatingFileHandler(
            os.path.join(LOG_DIR, log_file),
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUPS,
            encoding='utf-8'
        ),
        logging.StreamHandler(),
    )
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def configure_root_logger():
    """Keep SQLAlchemy and asyncio at WARNING so reminder logs stay readable."""
    logging.getLogger('sqlalchemy').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)


configure_root_logger()
