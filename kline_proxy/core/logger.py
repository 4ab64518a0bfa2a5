"""
Logging System Module

Provides structured logging with JSON formatting for production and
human-readable formatting for development.
"""

import logging
import logging.handlers
import sys
from typing import Optional
from pathlib import Path
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with additional fields"""

    def __init__(self, *args, local_tz=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.json_ensure_ascii = False
        self.local_tz = local_tz or timezone.utc

    def add_fields(self, log_record, record, message_dict):
        """Add custom fields to log record"""
        super().add_fields(log_record, record, message_dict)

        if not log_record.get('timestamp'):
            created = datetime.fromtimestamp(record.created, tz=timezone.utc)
            log_record['timestamp'] = created.astimezone(self.local_tz).isoformat()

        if log_record.get('level'):
            log_record['level'] = log_record['level'].upper()
        else:
            log_record['level'] = record.levelname

        log_record['logger'] = record.name
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors only the level column"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def __init__(self, *args, local_tz=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.local_tz = local_tz or timezone.utc

    def format(self, record: logging.LogRecord) -> str:
        utc_time = datetime.fromtimestamp(record.created, tz=timezone.utc)
        ts = utc_time.astimezone(self.local_tz).strftime("%Y-%m-%d %H:%M:%S")

        color = self.COLORS.get(record.levelname, "")
        reset = self.COLORS["RESET"]
        level = f"{record.levelname:<7}"
        location = f"{record.name}:{record.funcName}:{record.lineno}"
        message = super().format(record)
        # time | level | message | location
        return f"{ts} | {color}{level}{reset} | {message} | {location}"


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    environment: str = "dev",
    timezone_name: str = "UTC"
) -> None:
    """
    Setup logging configuration for the entire application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional, written as JSON lines)
        environment: Environment (dev/test/prod)
        timezone_name: Timezone name (e.g., Asia/Dubai, UTC)
    """
    try:
        local_tz = ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        local_tz = timezone.utc

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    if environment == "prod":
        console_formatter = CustomJsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s',
            local_tz=local_tz
        )
    else:
        console_formatter = ColoredFormatter('%(message)s', local_tz=local_tz)
    console_handler.setFormatter(console_formatter)

    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # One file per day, e.g. kline_proxy.log.2025-11-09
        file_handler = logging.handlers.TimedRotatingFileHandler(
            filename=log_file,
            when="midnight",
            interval=1,
            backupCount=0,
            utc=True,
            encoding="utf-8",
        )
        file_handler.suffix = "%Y-%m-%d"
        file_handler.setLevel(level)
        file_handler.setFormatter(
            CustomJsonFormatter(
                '%(timestamp)s %(level)s %(name)s %(message)s',
                local_tz=local_tz
            )
        )

        root_logger.addHandler(file_handler)

    # Suppress overly verbose third-party loggers
    logging.getLogger('aiohttp.access').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Logger instance

    Example:
        logger = get_logger(__name__)
        logger.info("Proxy started")
    """
    return logging.getLogger(name)


def init_logging_from_config():
    """Initialize logging using configuration from environment"""
    from kline_proxy.core.config import get_config

    try:
        config = get_config()
        setup_logging(
            log_level=config.log_level,
            log_file=config.log_file,
            environment=config.environment,
            timezone_name=config.timezone
        )

        logger = get_logger(__name__)
        logger.info(
            f"Logging initialized: level={config.log_level}, "
            f"environment={config.environment}, timezone={config.timezone}"
        )

    except Exception as e:
        # Fallback to basic logging if config fails
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s | %(levelname)s | %(name)s | %(message)s'
        )
        logging.error(f"Failed to initialize logging from config: {e}")
