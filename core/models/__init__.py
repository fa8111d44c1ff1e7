"""
Core data models for addon-sync

Pydantic settings model shared by the sync engine, the loader and the CLI.
"""

from .config import SyncSettings, DEFAULT_IGNORED_DIRECTORIES

__all__ = [
    # Configuration
    "SyncSettings",
    "DEFAULT_IGNORED_DIRECTORIES",
]
