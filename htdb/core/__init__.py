"""
Core module - Configuration, logging and cryptography.
"""

from htdb.core.config import ConfigError, HtdbConfig
from htdb.core.logging import SecretLogFilter, get_logger

__all__ = ["HtdbConfig", "ConfigError", "get_logger", "SecretLogFilter"]
