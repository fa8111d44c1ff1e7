"""
Change Router.

Maps created/renamed/deleted event batches onto manifest and package
index edits.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from ..models.config import SyncSettings
from .classifier import PathKind, classify
from .events import EventBatch, EventType, FileSystemEvent
from .maintenance import DebouncedMaintenanceTrigger
from .manifest import ManifestRegistryEditor
from .package_index import PackageIndexEditor

logger = logging.getLogger(__name__)


@dataclass
class RouterMetrics:
    """Counters for routed events and the edits they caused"""
    batches_dispatched: int = 0
    events_routed: int = 0
    events_ignored: int = 0
    registry_changes: int = 0
    errors: int = 0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None
    batches_by_type: Dict[str, int] = field(default_factory=dict)


class ChangeRouter:
    """
    Dispatches file system events to the registry editors.

    Each dispatch call restarts the maintenance debounce once, whatever
    the batch holds. Paths inside ignored directories are skipped. An
    error while routing one event is logged and counted; the remaining
    events of the batch are still routed.
    """

    def __init__(
        self,
        manifest_editor: ManifestRegistryEditor,
        index_editor: PackageIndexEditor,
        settings: SyncSettings,
        maintenance: Optional[DebouncedMaintenanceTrigger] = None,
        project_root: Optional[Path] = None
    ):
        self.manifest_editor = manifest_editor
        self.index_editor = index_editor
        self.settings = settings
        self.maintenance = maintenance
        self.project_root = Path(project_root) if project_root is not None else None
        self.metrics = RouterMetrics()

    async def dispatch(self, batch: EventBatch) -> int:
        """
        Route a batch of same-kind events.

        Returns:
            Number of registry documents changed
        """
        handlers = {
            EventType.CREATED: self._route_created,
            EventType.MOVED: self._route_renamed,
            EventType.DELETED: self._route_deleted,
        }

        self.metrics.batches_dispatched += 1
        kind = batch.event_type.value
        self.metrics.batches_by_type[kind] = self.metrics.batches_by_type.get(kind, 0) + 1

        if self.maintenance is not None:
            self.maintenance.trigger()

        changes = 0
        for event in batch.events:
            routed = self._drop_ignored_side(event)
            if routed is None:
                self.metrics.events_ignored += 1
                logger.debug(f"Ignoring {event}")
                continue

            try:
                changes += await handlers[routed.event_type](routed)
                self.metrics.events_routed += 1
            except Exception as e:
                self.metrics.errors += 1
                self.metrics.last_error = str(e)
                self.metrics.last_error_time = datetime.now()
                logger.error(f"Error routing {event}: {e}")

        self.metrics.registry_changes += changes
        return changes

    def _drop_ignored_side(self, event: FileSystemEvent) -> Optional[FileSystemEvent]:
        """
        Strip ignored paths from an event.

        A move out of an ignored directory is routed as a creation and a
        move into one as a deletion. Returns None if nothing is left.
        """
        new_ignored = classify(event.file_path, self.settings, self.project_root).ignored
        if event.event_type != EventType.MOVED:
            return None if new_ignored else event

        old_ignored = classify(event.old_path, self.settings, self.project_root).ignored
        if old_ignored and new_ignored:
            return None
        if old_ignored:
            return FileSystemEvent.create_file_created(
                event.file_path, is_directory=event.is_directory
            )
        if new_ignored:
            return FileSystemEvent.create_file_deleted(
                event.old_path, is_directory=event.is_directory
            )
        return event

    async def on_created(self, batch: EventBatch) -> int:
        return await self.dispatch(batch)

    async def on_renamed(self, batch: EventBatch) -> int:
        return await self.dispatch(batch)

    async def on_deleted(self, batch: EventBatch) -> int:
        return await self.dispatch(batch)

    async def _route_created(self, event: FileSystemEvent) -> int:
        return await self._register(event.file_path, event.is_directory)

    async def _register(self, path: Path, is_directory: bool) -> int:
        """Create-equivalent handling for a path that now exists"""
        if is_directory:
            # A directory arriving with its marker already inside
            marker = self.index_editor.index_path_for(path)
            if marker.is_file():
                return int(await self.index_editor.promote_directory_as_package(marker))
            return 0

        kind = classify(path, self.settings).kind
        if kind == PathKind.MANIFEST_ENTRY:
            return int(await self.manifest_editor.add_file(path))
        if kind == PathKind.PACKAGE_MARKER:
            return int(await self.index_editor.promote_directory_as_package(path))
        if kind == PathKind.MODULE_FILE:
            return int(await self.index_editor.add_module(path))
        return 0

    async def _unregister_import(self, path: Path, is_directory: bool) -> int:
        """Remove the import a module, marker or directory contributed"""
        if is_directory:
            return int(await self.index_editor.remove_module(path))

        kind = classify(path, self.settings).kind
        if kind == PathKind.MODULE_FILE:
            return int(await self.index_editor.remove_module(path))
        if kind == PathKind.PACKAGE_MARKER:
            return int(await self.index_editor.demote_directory_as_package(path))
        return 0

    async def _route_renamed(self, event: FileSystemEvent) -> int:
        old_path, new_path = event.old_path, event.file_path
        old_kind = classify(old_path, self.settings).kind
        new_kind = classify(new_path, self.settings).kind
        changes = 0

        if not event.is_directory and PathKind.MANIFEST_ENTRY in (old_kind, new_kind):
            if old_kind == PathKind.MANIFEST_ENTRY:
                changes += int(await self.manifest_editor.remove_file(old_path))
            if new_kind == PathKind.MANIFEST_ENTRY:
                changes += int(await self.manifest_editor.add_file(new_path))

        import_kinds = (PathKind.MODULE_FILE, PathKind.PACKAGE_MARKER)
        if event.is_directory or old_kind in import_kinds:
            changes += await self._unregister_import(old_path, event.is_directory)
        if event.is_directory or new_kind in import_kinds:
            changes += await self._register(new_path, event.is_directory)

        return changes

    async def _route_deleted(self, event: FileSystemEvent) -> int:
        path = event.file_path
        kind = classify(path, self.settings).kind

        if kind == PathKind.MANIFEST_ENTRY and not event.is_directory:
            return int(await self.manifest_editor.remove_file(path))
        if kind == PathKind.PACKAGE_MARKER and not event.is_directory:
            return int(await self.index_editor.demote_directory_as_package(path))
        # Module file, or a path that may have been a directory
        return int(await self.index_editor.remove_module(path))

    def get_status(self) -> Dict[str, Any]:
        m = self.metrics
        return {
            "batches_dispatched": m.batches_dispatched,
            "batches_by_type": dict(m.batches_by_type),
            "events_routed": m.events_routed,
            "events_ignored": m.events_ignored,
            "registry_changes": m.registry_changes,
            "errors": m.errors,
            "last_error": m.last_error,
            "last_error_time": m.last_error_time.isoformat() if m.last_error_time else None,
        }
