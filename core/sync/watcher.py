"""
Project File System Watcher.

Turns watchdog notifications into ordered event batches for the change
router.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler, FileSystemEvent as WatchdogEvent
from watchdog.events import (
    DirDeletedEvent, DirMovedEvent,
    FileCreatedEvent, FileDeletedEvent, FileMovedEvent,
)

from ..models.config import SyncSettings
from .classifier import is_ignored
from .events import EventBatch, FileSystemEvent, group_into_batches

logger = logging.getLogger(__name__)

BatchHandler = Callable[[EventBatch], Awaitable[Any]]


class ProjectFileSystemWatcher:
    """
    Watchdog based event feed.

    Created, deleted and moved notifications are collected for
    `batch_window_ms` after the last one, then delivered as consecutive
    same-kind batches in arrival order. Directory creations and content
    modifications never affect a registry and are dropped, as are raw
    notifications whose every path sits in an ignored directory.
    """

    def __init__(
        self,
        project_path: Path,
        batch_handler: BatchHandler,
        settings: Optional[SyncSettings] = None,
        recursive: bool = True
    ):
        """
        Initialize the file system watcher.

        Args:
            project_path: Root directory to monitor
            batch_handler: Coroutine receiving each event batch
            settings: Classification and timing settings
            recursive: Whether to monitor subdirectories
        """
        self.project_path = Path(project_path).resolve()
        self.batch_handler = batch_handler
        self.settings = settings or SyncSettings()
        self.recursive = recursive

        # Watchdog components
        self.observer: Optional[Observer] = None
        self.event_handler: Optional['SyncFileSystemEventHandler'] = None

        # Batching state
        self._pending_events: List[FileSystemEvent] = []
        self._flush_task: Optional[asyncio.Task] = None
        self._delivery_lock = asyncio.Lock()

        # Monitoring state
        self._is_monitoring = False
        self._monitor_start_time: Optional[datetime] = None
        self._batches_delivered = 0

        # Error tracking
        self._error_count = 0
        self._last_error: Optional[str] = None
        self._last_error_time: Optional[datetime] = None

        logger.info(f"Initialized ProjectFileSystemWatcher for {self.project_path}")

    async def start_monitoring(self) -> bool:
        """
        Start file system monitoring.

        Returns:
            True if monitoring started successfully, False otherwise
        """
        if self._is_monitoring:
            logger.warning("File system monitoring is already active")
            return True

        try:
            if not self.project_path.exists():
                raise FileNotFoundError(f"Project path does not exist: {self.project_path}")

            if not self.project_path.is_dir():
                raise NotADirectoryError(f"Project path is not a directory: {self.project_path}")

            self.event_handler = SyncFileSystemEventHandler(self)
            self.event_handler.set_event_loop(asyncio.get_running_loop())

            self.observer = Observer()
            self.observer.schedule(
                self.event_handler,
                str(self.project_path),
                recursive=self.recursive
            )
            self.observer.start()

            self._is_monitoring = True
            self._monitor_start_time = datetime.now()
            self._error_count = 0

            logger.info(f"Started monitoring {self.project_path} (recursive={self.recursive})")
            return True

        except Exception as e:
            error_msg = f"Failed to start file system monitoring: {e}"
            logger.error(error_msg)
            self._record_error(error_msg)
            self.observer = None
            self.event_handler = None
            return False

    async def stop_monitoring(self) -> None:
        """Stop monitoring, delivering anything still buffered."""
        if not self._is_monitoring:
            return

        self._is_monitoring = False

        if self.event_handler:
            self.event_handler.set_event_loop(None)

        if self.observer:
            try:
                self.observer.stop()
                self.observer.join(timeout=5.0)
            except Exception as e:
                logger.warning(f"Error stopping observer: {e}")
            finally:
                self.observer = None

        if self._flush_task and not self._flush_task.done():
            self._flush_task.cancel()
        self._flush_task = None
        await self.flush()

        self.event_handler = None

        logger.info(f"Stopped file system monitoring (duration: {self.monitoring_duration})")

    def _record_error(self, message: str) -> None:
        self._error_count += 1
        self._last_error = message
        self._last_error_time = datetime.now()

    def convert_watchdog_event(self, event: WatchdogEvent) -> Optional[FileSystemEvent]:
        """
        Convert a watchdog event to a FileSystemEvent.

        Returns:
            FileSystemEvent or None if the event is irrelevant
        """
        try:
            if isinstance(event, (FileMovedEvent, DirMovedEvent)):
                old_path = Path(event.src_path).absolute()
                new_path = Path(event.dest_path).absolute()
                root = self.project_path
                if is_ignored(old_path, self.settings, root) and is_ignored(new_path, self.settings, root):
                    return None
                return FileSystemEvent.create_file_moved(
                    old_path, new_path, is_directory=event.is_directory
                )

            file_path = Path(event.src_path).absolute()
            if is_ignored(file_path, self.settings, self.project_path):
                return None

            if isinstance(event, FileCreatedEvent):
                return FileSystemEvent.create_file_created(file_path)
            elif isinstance(event, (FileDeletedEvent, DirDeletedEvent)):
                return FileSystemEvent.create_file_deleted(
                    file_path, is_directory=event.is_directory
                )
            # Directory creations, modifications, open/close notifications
            return None

        except Exception as e:
            logger.warning(f"Error converting watchdog event {event}: {e}")
            return None

    async def handle_watchdog_event(self, event: WatchdogEvent) -> None:
        """Buffer a watchdog event and restart the batch window."""
        try:
            fs_event = self.convert_watchdog_event(event)
            if fs_event is None:
                return
            self.enqueue(fs_event)
        except Exception as e:
            logger.error(f"Error handling watchdog event {event}: {e}")
            self._record_error(str(e))

    def enqueue(self, event: FileSystemEvent) -> None:
        """Add an event to the current batch window."""
        self._pending_events.append(event)

        if self._flush_task and not self._flush_task.done():
            self._flush_task.cancel()
        self._flush_task = asyncio.get_running_loop().create_task(
            self._flush_after(self.settings.batch_window_seconds)
        )

    async def _flush_after(self, delay_seconds: float) -> None:
        try:
            await asyncio.sleep(delay_seconds)
        except asyncio.CancelledError:
            return
        # Past the window: later events start a new timer instead of cancelling delivery
        if self._flush_task is asyncio.current_task():
            self._flush_task = None
        await self.flush()

    async def flush(self) -> int:
        """
        Deliver buffered events as batches.

        Returns:
            Number of batches delivered
        """
        async with self._delivery_lock:
            events, self._pending_events = self._pending_events, []
            delivered = 0
            for batch in group_into_batches(events):
                try:
                    await self.batch_handler(batch)
                    delivered += 1
                except Exception as e:
                    logger.error(f"Error delivering batch {batch.batch_id}: {e}")
                    self._record_error(str(e))
            self._batches_delivered += delivered
            return delivered

    @property
    def is_monitoring(self) -> bool:
        """Check if file system monitoring is active."""
        return self._is_monitoring

    @property
    def monitoring_duration(self) -> Optional[timedelta]:
        """Get duration of current monitoring session."""
        if not self._monitor_start_time:
            return None
        return datetime.now() - self._monitor_start_time

    def get_status(self) -> Dict[str, Any]:
        """
        Get status information.

        Returns:
            Dictionary with status information
        """
        return {
            "is_monitoring": self._is_monitoring,
            "project_path": str(self.project_path),
            "recursive": self.recursive,
            "batch_window_ms": self.settings.batch_window_ms,
            "monitoring_duration": str(self.monitoring_duration) if self.monitoring_duration else None,
            "pending_events": len(self._pending_events),
            "batches_delivered": self._batches_delivered,
            "error_count": self._error_count,
            "last_error": self._last_error,
            "last_error_time": self._last_error_time.isoformat() if self._last_error_time else None
        }

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start_monitoring()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.stop_monitoring()


class SyncFileSystemEventHandler(FileSystemEventHandler):
    """
    Watchdog event handler that forwards events to ProjectFileSystemWatcher.

    Watchdog calls this from its observer thread; events are handed to the
    watcher's event loop with call_soon_threadsafe.
    """

    def __init__(self, watcher: ProjectFileSystemWatcher):
        super().__init__()
        self.watcher = watcher
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._event_loop: Optional[asyncio.AbstractEventLoop] = None

    def set_event_loop(self, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        """Set the event loop to schedule on, or None to drop events"""
        self._event_loop = loop

    def on_any_event(self, event: WatchdogEvent) -> None:
        loop = self._event_loop
        if loop is None or loop.is_closed():
            self.logger.debug(f"No event loop available, dropping event: {event}")
            return

        try:
            loop.call_soon_threadsafe(
                lambda: loop.create_task(self.watcher.handle_watchdog_event(event))
            )
        except RuntimeError as e:
            # Event loop closing
            if "closed" not in str(e).lower():
                self.logger.error(f"Failed to schedule event on loop: {e}")
