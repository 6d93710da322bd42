"""
Logging configuration for Radio Now Playing

This module sets up logging based on settings from radio_nowplaying_settings.json:
- Console logging (for development)
- File logging (rotating, for production debugging)
- Configurable log levels for console and file
"""

import logging
import re
import sys
from logging.handlers import RotatingFileHandler

ANSI_ESCAPE = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColorStripFormatter(logging.Formatter):
    """Formatter that strips ANSI color codes from log messages"""

    def format(self, record):
        record.msg = ANSI_ESCAPE.sub('', str(record.msg))
        return super().format(record)


def setup_logging(settings=None):
    """Setup logging based on settings

    Args:
        settings: Settings dict (see radio_nowplaying.settings)
                 If None, uses defaults
    """
    logging_config = settings.get('logging', {}) if settings else {}

    log_file = logging_config.get('file', 'radio_nowplaying.log')
    max_bytes = logging_config.get('max_bytes', 10485760)  # 10MB
    backup_count = logging_config.get('backup_count', 5)
    console_level_name = logging_config.get('console_level', 'INFO')
    file_level_name = logging_config.get('file_level', 'ERROR')

    console_level = getattr(logging, console_level_name.upper(), logging.INFO)
    file_level = getattr(logging, file_level_name.upper(), logging.ERROR)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Handlers filter
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(file_level)
            file_handler.setFormatter(ColorStripFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
            root_logger.addHandler(file_handler)
        except OSError as e:
            # Console logging still works
            print(f"Warning: Could not setup file logging: {e}")

    # Reduce Flask/Werkzeug request logging noise
    logging.getLogger('werkzeug').setLevel(logging.ERROR)
    # APScheduler logs every job run at INFO
    logging.getLogger('apscheduler').setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured: console={console_level_name}, file={file_level_name}, file={log_file}")
    logger.debug(f"Max file size: {max_bytes} bytes, Backup count: {backup_count}")


def get_logger(name):
    """Get a logger instance

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
