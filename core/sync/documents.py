"""
Text Document Store.

Read/edit/persist boundary for registry documents. Edits are applied to an
in-memory snapshot of the whole document and only reach the disk on
`persist`, so a failed edit leaves the file untouched.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Union

import aiofiles

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextEdit:
    """Replace text[start:end] with new_text; start == end is an insertion"""
    start: int
    end: int
    new_text: str

    @classmethod
    def insertion(cls, offset: int, new_text: str) -> 'TextEdit':
        return cls(start=offset, end=offset, new_text=new_text)

    @classmethod
    def replace_all(cls, old_text: str, new_text: str) -> 'TextEdit':
        return cls(start=0, end=len(old_text), new_text=new_text)

    def apply(self, text: str) -> str:
        if not 0 <= self.start <= self.end <= len(text):
            raise ValueError(
                f"Edit range {self.start}:{self.end} outside document of length {len(text)}"
            )
        return text[:self.start] + self.new_text + text[self.end:]


class TextDocumentStore:
    """
    Plain-file document store.

    Documents are read and written as UTF-8 with line endings preserved.
    No lock is held between `read_text` and `persist`; concurrent edits of
    the same document are last-write-wins.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self._buffers: Dict[str, str] = {}
        self.write_count = 0

    @staticmethod
    def _key(path: Union[str, Path]) -> str:
        return str(Path(path))

    async def exists(self, path: Union[str, Path]) -> bool:
        return Path(path).is_file()

    async def create_empty(self, path: Union[str, Path]) -> bool:
        """
        Create an empty document.

        Returns:
            True if the file was created, False if it already existed
        """
        try:
            async with aiofiles.open(path, 'x', encoding=self.encoding) as f:
                await f.write('')
        except FileExistsError:
            return False
        logger.info(f"Created empty document {path}")
        return True

    async def read_text(self, path: Union[str, Path]) -> str:
        """
        Read the current text of a document and keep it as the edit snapshot.

        Raises:
            FileNotFoundError: if the document does not exist
        """
        async with aiofiles.open(path, 'r', encoding=self.encoding, newline='') as f:
            text = await f.read()
        self._buffers[self._key(path)] = text
        return text

    async def apply_edit(self, path: Union[str, Path], edit: TextEdit) -> bool:
        """Apply an edit to the snapshot; returns True if the text changed"""
        key = self._key(path)
        if key not in self._buffers:
            await self.read_text(path)

        current = self._buffers[key]
        updated = edit.apply(current)
        if updated == current:
            return False
        self._buffers[key] = updated
        return True

    async def persist(self, path: Union[str, Path]) -> None:
        """Write the snapshot of a document back to disk"""
        key = self._key(path)
        if key not in self._buffers:
            return

        text = self._buffers.pop(key)
        async with aiofiles.open(path, 'w', encoding=self.encoding, newline='') as f:
            await f.write(text)
        self.write_count += 1
        logger.debug(f"Persisted {path} ({len(text)} chars)")

    def discard(self, path: Union[str, Path]) -> None:
        """Drop an unpersisted snapshot"""
        self._buffers.pop(self._key(path), None)
