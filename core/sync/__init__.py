"""
Registry Synchronization System.

Keeps addon manifests (`__manifest__.py` data lists) and package indexes
(`__init__.py` import lines) consistent with the project file tree as
files and folders are created, renamed or deleted.

Key Components:
- classify / PathKind: Path categorization and ignore filtering
- find_nearest: Nearest-ancestor file lookup
- TextDocumentStore: Read/edit/persist boundary for registry documents
- ManifestRegistryEditor: Manifest data list edits
- PackageIndexEditor: Index import lines and sub-package promotion
- ChangeRouter: Event batch dispatch to the editors
- DebouncedMaintenanceTrigger: Coalesced maintenance script runs
- ProjectFileSystemWatcher: Watchdog based event feed
- RegistrySyncEngine: Wiring of all of the above for one project
"""

from .classifier import PathKind, PathClassification, classify
from .locator import find_nearest
from .events import FileSystemEvent, EventType, EventBatch
from .documents import TextDocumentStore, TextEdit
from .manifest import ManifestRegistryEditor
from .package_index import PackageIndexEditor, module_name_for
from .router import ChangeRouter
from .maintenance import DebouncedMaintenanceTrigger, MaintenanceScriptRunner, MaintenanceResult
from .watcher import ProjectFileSystemWatcher
from .engine import RegistrySyncEngine

__all__ = [
    "PathKind",
    "PathClassification",
    "classify",
    "find_nearest",
    "FileSystemEvent",
    "EventType",
    "EventBatch",
    "TextDocumentStore",
    "TextEdit",
    "ManifestRegistryEditor",
    "PackageIndexEditor",
    "module_name_for",
    "ChangeRouter",
    "DebouncedMaintenanceTrigger",
    "MaintenanceScriptRunner",
    "MaintenanceResult",
    "ProjectFileSystemWatcher",
    "RegistrySyncEngine",
]

__version__ = "1.0.0"
