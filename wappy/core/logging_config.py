# wappy/core/logging_config.py
"""
Logging configuration for the Wappy console backend.
Console output plus rotating files, with a dedicated log for Kaleyra traffic.
"""
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from wappy.core import config

PROVIDER_LOGGER_NAME = "wappy.provider_api"

SENSITIVE_KEYS = {"api-key", "api_key", "apikey", "password", "token", "secret", "wa_kaleyra_apikey"}


class ColoredFormatter(logging.Formatter):
    """Colored console formatter for better readability"""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        # Work on a copy so file handlers keep the plain level name
        record = logging.makeLogRecord(record.__dict__)
        log_color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        record.levelname = f"{log_color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(record)


def _rotating_handler(path: Path, level: int, fmt: str, max_mb: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_mb * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S'))
    return handler


def setup_logging(
    app_name: str = "wappy",
    level: str = config.LOG_LEVEL,
    log_dir: Optional[Path] = None,
    to_file: bool = config.LOG_TO_FILE,
):
    """
    Setup logging with console and (optionally) file handlers.

    Creates three log files:
    - error.log: Only ERROR and CRITICAL messages
    - debug.log: All DEBUG and above messages
    - provider_api.log: Requests to and answers from Kaleyra
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # ═══════════════════════════════════════════════════════════
    # Console Handler - with colors
    # ═══════════════════════════════════════════════════════════
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(ColoredFormatter('%(levelname)s | %(name)s | %(message)s'))
    root_logger.addHandler(console_handler)

    if not to_file:
        return root_logger

    log_dir = Path(log_dir or config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    # ═══════════════════════════════════════════════════════════
    # ERROR / DEBUG log files
    # ═══════════════════════════════════════════════════════════
    root_logger.addHandler(_rotating_handler(
        log_dir / "error.log",
        logging.ERROR,
        '%(asctime)s | %(levelname)s | %(name)s | %(filename)s:%(lineno)d | %(message)s',
        10,
    ))
    root_logger.addHandler(_rotating_handler(
        log_dir / "debug.log",
        logging.DEBUG,
        '%(asctime)s | %(levelname)-8s | %(name)-30s | %(filename)s:%(lineno)d | %(message)s',
        20,
    ))

    # ═══════════════════════════════════════════════════════════
    # Provider API Log File - only Kaleyra traffic
    # ═══════════════════════════════════════════════════════════
    provider_logger = logging.getLogger(PROVIDER_LOGGER_NAME)
    for handler in provider_logger.handlers[:]:
        provider_logger.removeHandler(handler)
    provider_logger.addHandler(_rotating_handler(
        log_dir / "provider_api.log",
        logging.DEBUG,
        '%(asctime)s | %(levelname)-8s | %(message)s',
        20,
    ))
    provider_logger.setLevel(logging.DEBUG)
    provider_logger.propagate = True  # Also send to root handlers

    logger = logging.getLogger(__name__)
    logger.info(f"{'='*60}")
    logger.info(f"Logging initialized for {app_name}")
    logger.info(f"Log directory: {log_dir}")
    logger.info(f"{'='*60}")

    return root_logger


def get_provider_logger():
    """Get logger specifically for provider API operations"""
    return logging.getLogger(PROVIDER_LOGGER_NAME)


# ═══════════════════════════════════════════════════════════
# Helper functions for detailed logging
# ═══════════════════════════════════════════════════════════

def mask_secrets(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a copy of ``data`` with sensitive values hidden."""
    if not data:
        return {}
    return {
        key: '***HIDDEN***' if str(key).lower() in SENSITIVE_KEYS else value
        for key, value in data.items()
    }


def log_api_request(logger, method: str, endpoint: str, data: dict = None, headers: dict = None):
    """Log outgoing API request details"""
    logger.debug(f"🌐 API REQUEST: {method} {endpoint}")
    if headers:
        logger.debug(f"Headers: {mask_secrets(headers)}")
    if data:
        logger.debug(f"Request Data: {mask_secrets(data)}")


def log_api_response(logger, status_code: int, response_data: Any, error: Exception = None):
    """Log API response details"""
    if error:
        logger.error(f"❌ API RESPONSE: Status {status_code} | {type(error).__name__}: {error}")
        logger.error(f"Response Data: {response_data}")
    else:
        logger.debug(f"📥 API RESPONSE: Status {status_code} | {response_data}")
