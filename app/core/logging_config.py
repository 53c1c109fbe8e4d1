"""
Logging setup shared by the API process and the nightly scheduler

- Log rotation (keep 7 files, max 50MB per file)
- Reduced SQL / scheduler noise
"""
import logging
from logging.handlers import RotatingFileHandler
import os

from .config import settings

_configured = False


def setup_logging(log_name: str = "app") -> None:
    global _configured
    if _configured:
        return

    os.makedirs(settings.LOGS_PATH, exist_ok=True)
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    # Create rotating file handler (50MB max, keep 7 files = 350MB max)
    file_handler = RotatingFileHandler(
        os.path.join(settings.LOGS_PATH, f"{log_name}.log"),
        maxBytes=50*1024*1024,  # 50MB
        backupCount=7,
        encoding='utf-8'
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))

    # Console handler (show in terminal)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    ))

    # Disable noisy loggers BEFORE basicConfig
    logging.getLogger('sqlalchemy').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.pool').setLevel(logging.WARNING)
    logging.getLogger('apscheduler').setLevel(logging.WARNING)

    logging.basicConfig(level=level, handlers=[file_handler, console_handler])
    _configured = True
