"""
Nearest-ancestor file lookup.
"""

from pathlib import Path
from typing import Optional, Union


def find_nearest(start_dir: Union[str, Path], target_filename: str) -> Optional[Path]:
    """
    Find `target_filename` in `start_dir` or its closest ancestor.

    `start_dir` may already be gone (deleted trees); only the candidate
    files are checked for existence. The walk stops once the parent of a
    directory is the directory itself, which is how the filesystem root
    presents itself.

    Returns:
        Path of the nearest match, or None
    """
    current = Path(start_dir)
    while True:
        candidate = current / target_filename
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent
