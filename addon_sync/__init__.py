"""
addon-sync - registry synchronization for addon projects.

Watches a project tree and keeps `__manifest__.py` data lists and
`__init__.py` import lines consistent with the files on disk.
"""

__version__ = "1.0.0"
__author__ = "addon-sync developers"

# Package imports for convenient access
from core.models.config import SyncSettings
from core.sync.engine import RegistrySyncEngine
from core.sync.router import ChangeRouter

__all__ = [
    "SyncSettings",
    "RegistrySyncEngine",
    "ChangeRouter",
    "__version__",
]
