"""
Path Classification.

Decides whether a path is ignorable and which registry, if any, it
belongs to. Pure functions of the path string; nothing touches the disk.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath
from typing import Optional, Tuple, Union

from ..models.config import SyncSettings


class PathKind(Enum):
    """Registry category of a path"""
    MANIFEST_ENTRY = "manifest-entry"   # Data file listed in a manifest
    MODULE_FILE = "module-file"         # Module imported by its directory index
    PACKAGE_MARKER = "package-marker"   # The index document itself
    OTHER = "other"


@dataclass(frozen=True)
class PathClassification:
    ignored: bool
    kind: PathKind


def _segments(path: PurePath, root: Optional[PurePath]) -> Tuple[str, ...]:
    # Directories above the project root never count
    if root is not None:
        try:
            return path.relative_to(root).parts
        except ValueError:
            return path.parts
    return path.parts


def is_ignored(
    path: Union[str, PurePath],
    settings: SyncSettings,
    root: Optional[Union[str, PurePath]] = None
) -> bool:
    """
    True if a segment of the path is a denylisted directory name.

    With `root`, only the segments below it are checked, so a project that
    lives under e.g. `/srv/build/` is still watched. Paths outside `root`
    are checked in full.
    """
    denied = set(settings.ignored_directories)
    segments = _segments(PurePath(path), PurePath(root) if root is not None else None)
    return any(part in denied for part in segments)


def path_kind(path: Union[str, PurePath], settings: SyncSettings) -> PathKind:
    name = PurePath(path).name
    suffix = PurePath(path).suffix

    if name == settings.index_filename:
        return PathKind.PACKAGE_MARKER
    if name == settings.manifest_filename:
        return PathKind.OTHER
    if suffix.lower() in settings.manifest_extensions:
        return PathKind.MANIFEST_ENTRY
    # Case sensitive: `Report.PY` is not importable as `Report`
    if suffix == settings.module_extension:
        return PathKind.MODULE_FILE
    return PathKind.OTHER


def classify(
    path: Union[str, PurePath],
    settings: SyncSettings,
    root: Optional[Union[str, PurePath]] = None
) -> PathClassification:
    """
    Classify a path for routing.

    Args:
        path: File or directory path; it does not need to exist
        settings: Naming and denylist rules
        root: Project root; segments above it are not checked for ignoring

    Returns:
        PathClassification with the ignore flag and the path kind
    """
    return PathClassification(
        ignored=is_ignored(path, settings, root),
        kind=path_kind(path, settings)
    )
