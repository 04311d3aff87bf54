"""
onchanged Utilities Package.

Common utilities shared across all backend modules.
Requires Python 3.11+.
"""

from utils.config import Settings, get_settings
from utils.logger import configure_logging, get_logger, logger, LoggerMixin
from utils.errors import (
    OnChangedError,
    FatalError,
    DescriptorParseError,
    RootDescriptorError,
    RootDeletedError,
    BuildToolNotFoundError,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "logger",
    "LoggerMixin",
    # Errors
    "OnChangedError",
    "FatalError",
    "DescriptorParseError",
    "RootDescriptorError",
    "RootDeletedError",
    "BuildToolNotFoundError",
]
