"""
Manifest Registry Editor.

Adds and removes data file paths in the `'data': [...]` list of the
nearest `__manifest__.py`.
"""

import logging
import os
from pathlib import Path
from typing import Union

from ..models.config import SyncSettings
from .anchors import find_list_anchor, line_ending, quoted_forms, rest_of_line
from .documents import TextDocumentStore, TextEdit
from .locator import find_nearest

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ManifestRegistryEditor:
    """
    Keeps manifest data lists in step with the data files of an addon.

    Entries are written one per line, single-quoted and comma-terminated,
    right after the opening bracket of the list. Removal is line based:
    every line quoting the path is dropped, which matches the layout this
    editor produces.
    """

    def __init__(self, store: TextDocumentStore, settings: SyncSettings):
        self.store = store
        self.settings = settings

    @staticmethod
    def relative_entry(manifest_path: PathLike, target_file_path: PathLike) -> str:
        """Path of the target relative to the manifest directory, with `/` separators"""
        manifest_dir = os.path.dirname(os.fspath(manifest_path))
        relative = os.path.relpath(os.fspath(target_file_path), manifest_dir)
        return relative.replace(os.sep, '/').replace('\\', '/')

    def find_manifest(self, file_path: PathLike) -> Union[Path, None]:
        """Nearest manifest governing `file_path`"""
        return find_nearest(Path(file_path).parent, self.settings.manifest_filename)

    async def add_entry(self, manifest_path: PathLike, target_file_path: PathLike) -> bool:
        """
        Register a data file in a manifest.

        Args:
            manifest_path: Manifest to edit
            target_file_path: Data file to register

        Returns:
            True if the manifest was changed
        """
        relative = self.relative_entry(manifest_path, target_file_path)

        try:
            text = await self.store.read_text(manifest_path)
        except FileNotFoundError:
            logger.debug(f"Manifest {manifest_path} disappeared, skipping {relative}")
            return False

        if relative in text:
            self.store.discard(manifest_path)
            logger.debug(f"{relative} already listed in {manifest_path}")
            return False

        anchor = find_list_anchor(text, self.settings.manifest_list_key)
        if anchor is None:
            self.store.discard(manifest_path)
            logger.debug(
                f"No '{self.settings.manifest_list_key}' list in {manifest_path}, "
                f"not registering {relative}"
            )
            return False

        entry_indent = ' ' * self.settings.entry_indent
        newline = line_ending(text, anchor.insert_at)
        new_text = f"{newline}{entry_indent}'{relative}',"
        end = anchor.insert_at

        # Content sharing the bracket's line moves below the new entry
        tail = rest_of_line(text, anchor.insert_at)
        if tail.strip():
            end += len(tail) - len(tail.lstrip())
            if tail.lstrip().startswith(']'):
                new_text += f"{newline}{anchor.line_indent}"
            else:
                new_text += f"{newline}{entry_indent}"

        await self.store.apply_edit(
            manifest_path,
            TextEdit(start=anchor.insert_at, end=end, new_text=new_text)
        )
        await self.store.persist(manifest_path)
        logger.info(f"Registered {relative} in {manifest_path}")
        return True

    async def remove_entry(self, manifest_path: PathLike, target_file_path: PathLike) -> bool:
        """
        Drop every manifest line that quotes the target's relative path.

        Returns:
            True if the manifest was changed
        """
        relative = self.relative_entry(manifest_path, target_file_path)

        try:
            text = await self.store.read_text(manifest_path)
        except FileNotFoundError:
            logger.debug(f"Manifest {manifest_path} disappeared, skipping {relative}")
            return False

        needles = quoted_forms(relative)
        lines = text.splitlines(keepends=True)
        kept = [line for line in lines if not any(n in line for n in needles)]

        if len(kept) == len(lines):
            self.store.discard(manifest_path)
            return False

        await self.store.apply_edit(manifest_path, TextEdit.replace_all(text, ''.join(kept)))
        await self.store.persist(manifest_path)
        logger.info(f"Removed {relative} from {manifest_path}")
        return True

    async def add_file(self, file_path: PathLike) -> bool:
        """Register a data file in its nearest manifest, if it has one"""
        manifest_path = self.find_manifest(file_path)
        if manifest_path is None:
            logger.debug(f"No manifest governs {file_path}")
            return False
        return await self.add_entry(manifest_path, file_path)

    async def remove_file(self, file_path: PathLike) -> bool:
        """Remove a data file from its nearest manifest, if it has one"""
        manifest_path = self.find_manifest(file_path)
        if manifest_path is None:
            logger.debug(f"No manifest governs {file_path}")
            return False
        return await self.remove_entry(manifest_path, file_path)
