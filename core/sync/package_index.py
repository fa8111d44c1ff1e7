"""
Package Index Editor.

Maintains the `from . import <name>` lines of `__init__.py` documents and
registers sub-packages in their parent's index when a marker appears.
"""

import logging
from pathlib import Path, PurePath
from typing import Union

from ..models.config import SyncSettings
from .anchors import has_exact_import, import_statement, is_import_line
from .documents import TextDocumentStore, TextEdit

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def module_name_for(path: PathLike, module_extension: str = ".py") -> str:
    """
    Import name for a module file or a directory.

    The extension is stripped only if the literal path ends with it, since
    a deleted path cannot be inspected to tell files from directories.
    """
    name = PurePath(path).name
    if name.endswith(module_extension) and len(name) > len(module_extension):
        return name[:-len(module_extension)]
    return name


class PackageIndexEditor:
    """Edits package index documents line by line"""

    def __init__(self, store: TextDocumentStore, settings: SyncSettings):
        self.store = store
        self.settings = settings

    def index_path_for(self, directory: PathLike) -> Path:
        return Path(directory) / self.settings.index_filename

    def module_name_for(self, path: PathLike) -> str:
        return module_name_for(path, self.settings.module_extension)

    async def append_import(
        self,
        index_path: PathLike,
        module_name: str,
        create_missing: bool = False
    ) -> bool:
        """
        Append `from . import <module_name>` unless it is already present.

        Args:
            index_path: Index document to edit
            module_name: Name to import
            create_missing: Create an empty index first if it does not exist

        Returns:
            True if the index was changed
        """
        statement = import_statement(module_name)

        if not await self.store.exists(index_path):
            if not create_missing:
                logger.debug(f"No index at {index_path}, not importing {module_name}")
                return False
            await self.store.create_empty(index_path)

        try:
            text = await self.store.read_text(index_path)
        except FileNotFoundError:
            logger.debug(f"Index {index_path} disappeared, not importing {module_name}")
            return False

        if has_exact_import(text, module_name):
            self.store.discard(index_path)
            return False

        prefix = '\n' if text and not text.endswith('\n') else ''
        await self.store.apply_edit(
            index_path,
            TextEdit.insertion(len(text), f"{prefix}{statement}\n")
        )
        await self.store.persist(index_path)
        logger.info(f"Added '{statement}' to {index_path}")
        return True

    async def remove_import(self, index_path: PathLike, module_name: str) -> bool:
        """
        Drop every line importing `module_name`.

        Returns:
            True if the index was changed
        """
        try:
            text = await self.store.read_text(index_path)
        except FileNotFoundError:
            logger.debug(f"No index at {index_path}, nothing to remove for {module_name}")
            return False

        lines = text.splitlines(keepends=True)
        kept = [line for line in lines if not is_import_line(line, module_name)]

        if len(kept) == len(lines):
            self.store.discard(index_path)
            return False

        await self.store.apply_edit(index_path, TextEdit.replace_all(text, ''.join(kept)))
        await self.store.persist(index_path)
        logger.info(f"Removed '{import_statement(module_name)}' from {index_path}")
        return True

    async def add_module(self, module_path: PathLike) -> bool:
        """Import a new module file from its own directory's index"""
        module_path = Path(module_path)
        return await self.append_import(
            self.index_path_for(module_path.parent),
            self.module_name_for(module_path),
            create_missing=self.settings.create_missing_index
        )

    async def remove_module(self, path: PathLike) -> bool:
        """Forget a module file or directory in its parent directory's index"""
        path = Path(path)
        return await self.remove_import(
            self.index_path_for(path.parent),
            self.module_name_for(path)
        )

    async def promote_directory_as_package(self, marker_path: PathLike) -> bool:
        """
        Register the marker's directory in the parent directory's index.

        The parent index is never created; without one the directory is
        not reachable as a sub-package anyway.
        """
        package_dir = Path(marker_path).parent
        parent_index = self.index_path_for(package_dir.parent)
        if package_dir.parent == package_dir:
            return False
        if not await self.store.exists(parent_index):
            logger.debug(f"{package_dir.parent} is not a package, not promoting {package_dir.name}")
            return False
        return await self.append_import(parent_index, package_dir.name)

    async def demote_directory_as_package(self, marker_path: PathLike) -> bool:
        """Drop the marker's directory from the parent directory's index"""
        package_dir = Path(marker_path).parent
        if package_dir.parent == package_dir:
            return False
        return await self.remove_import(
            self.index_path_for(package_dir.parent),
            package_dir.name
        )
