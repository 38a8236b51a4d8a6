"""Configuration module for Finantech."""

from finantech.config.logging import configure_logging
from finantech.config.settings import FlatSettings, get_settings

__all__ = ["FlatSettings", "get_settings", "configure_logging"]
