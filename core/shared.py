"""
Shared Utilities and Common Functions
Logging and timing helpers used across the insights pipeline
"""

import logging
import logging.config
import sys
from pathlib import Path
from datetime import datetime

from .config import settings


def setup_logging() -> None:
    """Configure application logging."""

    # Ensure logs directory exists
    log_path = Path(settings.LOG_FILE).parent
    log_path.mkdir(parents=True, exist_ok=True)

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "[{asctime}] [{levelname}] [{name}] {message}",
                "style": "{",
                "datefmt": "%Y-%m-%d %H:%M:%S"
            },
            "simple": {
                "format": "[{levelname}] {message}",
                "style": "{"
            }
        },
        "handlers": {
            "console": {
                "level": "INFO",
                "class": "logging.StreamHandler",
                "formatter": "simple",
                "stream": sys.stdout
            },
            "file": {
                "level": settings.LOG_LEVEL,
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "detailed",
                "filename": settings.LOG_FILE,
                "maxBytes": 10 * 1024 * 1024,  # 10MB
                "backupCount": 5
            }
        },
        "loggers": {
            "": {  # Root logger
                "level": settings.LOG_LEVEL,
                "handlers": ["console", "file"]
            },
            "pipeline": {
                "level": settings.LOG_LEVEL,
                "handlers": ["console", "file"],
                "propagate": False
            },
            "tutor_insights_model": {
                "level": settings.LOG_LEVEL,
                "handlers": ["file"],
                "propagate": False
            }
        }
    }

    logging.config.dictConfig(logging_config)


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance."""
    return logging.getLogger(name)


def log_step(step_name: str, message: str, is_error: bool = False, logger_name: str = "pipeline") -> None:
    """Log pipeline steps with consistent formatting."""
    logger = get_logger(logger_name)

    if is_error:
        logger.error(f"{step_name}: {message}")
    else:
        logger.info(f"{step_name}: {message}")


class PerformanceTimer:
    """Context manager for timing operations."""

    def __init__(self, operation_name: str, logger_name: str = "pipeline"):
        self.operation_name = operation_name
        self.logger = get_logger(logger_name)
        self.start_time = None
        self.duration_ms = 0.0

    def __enter__(self):
        self.start_time = datetime.now()
        self.logger.info(f"Starting {self.operation_name}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = datetime.now() - self.start_time
        self.duration_ms = duration.total_seconds() * 1000
        if exc_type is None:
            self.logger.info(f"Completed {self.operation_name} in {duration.total_seconds():.2f} seconds")
        else:
            self.logger.error(f"Failed {self.operation_name} after {duration.total_seconds():.2f} seconds")


# Export commonly used items
__all__ = [
    "setup_logging",
    "get_logger",
    "log_step",
    "PerformanceTimer"
]
