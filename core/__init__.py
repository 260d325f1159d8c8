"""
Core module for the Tutor Insights platform
Provides configuration and shared utilities
"""

from .config import settings, get_settings
from .shared import (
    setup_logging,
    get_logger,
    log_step,
    PerformanceTimer
)

__all__ = [
    # Configuration
    "settings",
    "get_settings",

    # Shared utilities
    "setup_logging",
    "get_logger",
    "log_step",
    "PerformanceTimer"
]
