"""
File System Event Models.

Defines event types and batch structures delivered by the event feed to
the change router.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List
from pydantic import BaseModel, Field, field_validator, model_validator
import uuid


class EventType(Enum):
    """Types of file system events that trigger registry updates"""
    CREATED = "created"     # New file or directory
    DELETED = "deleted"     # File or directory removed
    MOVED = "moved"         # File or directory renamed/moved


class FileSystemEvent(BaseModel):
    """
    Represents one file system change.

    Deleted paths no longer exist, so `is_directory` is only as good as the
    information the event source had when the change happened.
    """

    # Event identification
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: EventType

    # File information
    file_path: Path
    old_path: Optional[Path] = None  # For move events
    is_directory: bool = False

    timestamp: datetime = Field(default_factory=datetime.now)

    @field_validator('file_path')
    @classmethod
    def validate_file_path(cls, v: Path) -> Path:
        """Ensure file path is absolute"""
        if not v.is_absolute():
            raise ValueError('File path must be absolute')
        return v

    @field_validator('old_path')
    @classmethod
    def validate_old_path(cls, v: Optional[Path]) -> Optional[Path]:
        """Ensure old path is absolute if provided"""
        if v is not None and not v.is_absolute():
            raise ValueError('Old path must be absolute if provided')
        return v

    @model_validator(mode='after')
    def validate_move_has_old_path(self) -> 'FileSystemEvent':
        if self.event_type == EventType.MOVED and self.old_path is None:
            raise ValueError('Move events require old_path')
        return self

    @classmethod
    def create_file_created(cls, file_path: Path, **kwargs) -> 'FileSystemEvent':
        """Create a file creation event"""
        return cls(event_type=EventType.CREATED, file_path=file_path, **kwargs)

    @classmethod
    def create_file_deleted(cls, file_path: Path, **kwargs) -> 'FileSystemEvent':
        """Create a file deletion event"""
        return cls(event_type=EventType.DELETED, file_path=file_path, **kwargs)

    @classmethod
    def create_file_moved(
        cls,
        old_path: Path,
        new_path: Path,
        **kwargs
    ) -> 'FileSystemEvent':
        """Create a file move/rename event"""
        return cls(
            event_type=EventType.MOVED,
            file_path=new_path,
            old_path=old_path,
            **kwargs
        )

    @property
    def paths(self) -> List[Path]:
        """All paths touched by this event, old path first"""
        if self.old_path is not None:
            return [self.old_path, self.file_path]
        return [self.file_path]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization"""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "file_path": str(self.file_path),
            "old_path": str(self.old_path) if self.old_path else None,
            "is_directory": self.is_directory,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        """String representation for logging"""
        old_part = f" (from {self.old_path})" if self.old_path else ""
        kind = " [dir]" if self.is_directory else ""
        return f"{self.event_type.value.upper()}: {self.file_path}{old_part}{kind}"


class EventBatch(BaseModel):
    """
    Events of a single kind delivered together, in feed order.

    The router handles one batch per dispatch call and fires the
    maintenance trigger once per batch.
    """

    batch_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: EventType
    events: List[FileSystemEvent] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode='after')
    def validate_single_kind(self) -> 'EventBatch':
        for event in self.events:
            if event.event_type != self.event_type:
                raise ValueError(
                    f'Batch of {self.event_type.value} events cannot hold '
                    f'a {event.event_type.value} event'
                )
        return self

    def add_event(self, event: FileSystemEvent) -> None:
        if event.event_type != self.event_type:
            raise ValueError(
                f'Batch of {self.event_type.value} events cannot hold '
                f'a {event.event_type.value} event'
            )
        self.events.append(event)

    @property
    def event_count(self) -> int:
        """Number of events in batch"""
        return len(self.events)

    @property
    def file_paths(self) -> List[Path]:
        """Paths of the batch in order, including old paths of moves"""
        paths: List[Path] = []
        for event in self.events:
            paths.extend(event.paths)
        return paths

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging"""
        return {
            "batch_id": self.batch_id,
            "event_type": self.event_type.value,
            "event_count": self.event_count,
            "created_at": self.created_at.isoformat(),
            "file_paths": [str(path) for path in self.file_paths]
        }


def group_into_batches(events: List[FileSystemEvent]) -> List[EventBatch]:
    """
    Split an ordered event list into consecutive same-kind batches.

    Order is preserved across batches so a create followed by a delete of
    the same file is replayed in that order.
    """
    batches: List[EventBatch] = []
    for event in events:
        if not batches or batches[-1].event_type != event.event_type:
            batches.append(EventBatch(event_type=event.event_type))
        batches[-1].add_event(event)
    return batches
