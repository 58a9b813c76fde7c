"""
Core module initialization.
Exports configuration, logging and error utilities.
"""

from tableside.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from tableside.core.errors import AppError

__all__ = ["get_settings", "setup_logging", "Settings", "EnvironmentMode", "AppError"]
