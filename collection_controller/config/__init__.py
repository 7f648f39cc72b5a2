"""
Configuration module: Settings, logging.
"""

from collection_controller.config.settings import Settings, check_field_names, get_settings
from collection_controller.config.logging import (
    StructuredLogger,
    StructuredLoggerAdapter,
    get_logger,
    setup_logging,
)

__all__ = [
    # settings
    "Settings",
    "check_field_names",
    "get_settings",
    # logging
    "StructuredLogger",
    "StructuredLoggerAdapter",
    "get_logger",
    "setup_logging",
]
