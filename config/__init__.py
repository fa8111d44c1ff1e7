"""
Configuration management for addon-sync

Handles defaults and settings resolution per project.
"""

from .loader import ConfigurationLoader
from .defaults import DEFAULT_SETTINGS, DEFAULT_IGNORED_DIRECTORIES

__all__ = ["ConfigurationLoader", "DEFAULT_SETTINGS", "DEFAULT_IGNORED_DIRECTORIES"]
