"""
addon-sync core package

Keeps addon manifests and package indexes in step with the file tree.
"""

__version__ = "1.0.0"
__author__ = "addon-sync developers"

from .models import SyncSettings

__all__ = [
    "SyncSettings",
]
