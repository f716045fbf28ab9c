"""
Storage Layer.

This package handles the persistence of the INI configuration file.
"""

from .config_manager import ConfigManager

__all__ = ["ConfigManager"]
