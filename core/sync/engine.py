"""
Registry Synchronization Engine.

Wires the document store, registry editors, change router, maintenance
trigger and file system watcher together for one project root.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..models.config import SyncSettings
from .classifier import is_ignored
from .documents import TextDocumentStore
from .events import EventBatch, EventType, FileSystemEvent
from .maintenance import DebouncedMaintenanceTrigger, MaintenanceScriptRunner
from .manifest import ManifestRegistryEditor
from .package_index import PackageIndexEditor
from .router import ChangeRouter
from .watcher import ProjectFileSystemWatcher

logger = logging.getLogger(__name__)


class RegistrySyncEngine:
    """
    Central coordinator for one watched project.

    Owns a single maintenance trigger; the watcher feeds the router, which
    restarts the trigger once per batch.
    """

    def __init__(
        self,
        project_path: Path,
        settings: Optional[SyncSettings] = None,
        notifier: Optional[Callable[[str], None]] = None
    ):
        """
        Initialize the engine.

        Args:
            project_path: Project root; also where the maintenance script lives
            settings: Synchronization settings
            notifier: Receives user-facing maintenance failure messages
        """
        self.project_path = Path(project_path).resolve()
        self.settings = settings or SyncSettings()

        self.store = TextDocumentStore()
        self.manifest_editor = ManifestRegistryEditor(self.store, self.settings)
        self.index_editor = PackageIndexEditor(self.store, self.settings)

        self.maintenance_runner = MaintenanceScriptRunner(
            project_root=self.project_path,
            script_name=self.settings.maintenance_script,
            restart_command=self.settings.restart_command,
            notifier=notifier
        )
        self.maintenance = DebouncedMaintenanceTrigger(
            self.maintenance_runner.run,
            delay_seconds=self.settings.maintenance_delay_seconds
        )

        self.router = ChangeRouter(
            manifest_editor=self.manifest_editor,
            index_editor=self.index_editor,
            settings=self.settings,
            maintenance=self.maintenance,
            project_root=self.project_path
        )

        self.watcher: Optional[ProjectFileSystemWatcher] = None
        self.start_time: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self.watcher is not None and self.watcher.is_monitoring

    async def start(self) -> bool:
        """
        Start watching the project.

        Returns:
            True if the watcher is running
        """
        if self.is_running:
            logger.warning("Synchronization engine is already running")
            return True

        self.watcher = ProjectFileSystemWatcher(
            project_path=self.project_path,
            batch_handler=self.router.dispatch,
            settings=self.settings
        )
        started = await self.watcher.start_monitoring()
        if started:
            self.start_time = datetime.now()
            logger.info(f"Synchronizing registries under {self.project_path}")
        return started

    async def stop(self) -> None:
        """Stop watching; a pending maintenance run is dropped."""
        if self.watcher is not None:
            await self.watcher.stop_monitoring()
        await self.maintenance.shutdown()
        logger.info("Stopped RegistrySyncEngine")

    def _collect_files(self, paths: Iterable[Path]) -> List[Path]:
        files: List[Path] = []
        for path in paths:
            path = Path(path).absolute()
            if is_ignored(path, self.settings, self.project_path):
                continue
            if path.is_dir():
                files.extend(
                    p for p in sorted(path.rglob('*'))
                    if p.is_file() and not is_ignored(p, self.settings, self.project_path)
                )
            elif path.is_file():
                files.append(path)
        return files

    async def register_paths(self, paths: Iterable[Path]) -> int:
        """
        Replay creation events for existing files.

        Directories are expanded recursively. Useful for files that appeared
        while nothing was watching.

        Returns:
            Number of registry documents changed
        """
        files = self._collect_files(paths)
        if not files:
            return 0

        batch = EventBatch(
            event_type=EventType.CREATED,
            events=[FileSystemEvent.create_file_created(p) for p in files]
        )
        logger.info(f"Registering {len(files)} existing files")
        return await self.router.dispatch(batch)

    def get_status(self) -> Dict[str, Any]:
        script = self.maintenance_runner.script_path
        return {
            "project_path": str(self.project_path),
            "is_running": self.is_running,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "maintenance_script": str(script),
            "maintenance_script_present": script.is_file(),
            "maintenance_pending": self.maintenance.is_pending,
            "maintenance_runs": self.maintenance.fire_count,
            "documents_written": self.store.write_count,
            "router": self.router.get_status(),
            "watcher": self.watcher.get_status() if self.watcher else None,
        }

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
