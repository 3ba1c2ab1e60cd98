"""Handles for dropped or picked items awaiting upload.

A dropped tree is only reachable entry by entry: a directory hands out a
reader, and each `read_entries()` call returns the next batch of children
until an empty batch signals exhaustion. Local directories and trees rebuilt
from a multipart folder upload both expose that shape.
"""
from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Dict, Iterable, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


class SourceEntry(ABC):
    name: str
    is_directory: bool = False


class SourceFile(SourceEntry):
    """Leaf file handle. `open()` is blocking and runs on the transfer thread."""

    @property
    @abstractmethod
    def size(self) -> Optional[int]:
        ...

    @abstractmethod
    def open(self) -> BinaryIO:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class DirectoryReader(ABC):
    @abstractmethod
    async def read_entries(self) -> List[SourceEntry]:
        """Return the next batch of children, or an empty list once exhausted."""


class SourceDirectory(SourceEntry):
    is_directory = True

    @abstractmethod
    def create_reader(self) -> DirectoryReader:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


# -------------------------
# local filesystem
# -------------------------
class LocalFile(SourceFile):
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.name = self.path.name

    @property
    def size(self) -> Optional[int]:
        try:
            return self.path.stat().st_size
        except OSError:
            return None

    def open(self) -> BinaryIO:
        return self.path.open("rb")


class _LocalDirectoryReader(DirectoryReader):
    def __init__(self, path: Path, batch_size: int) -> None:
        self._path = path
        self._batch_size = max(1, batch_size)
        self._iterator: Optional[Iterator[os.DirEntry]] = None
        self._exhausted = False

    def _next_batch(self) -> List[SourceEntry]:
        if self._exhausted:
            return []
        if self._iterator is None:
            self._iterator = os.scandir(self._path)
        batch: List[SourceEntry] = []
        for item in self._iterator:
            if item.is_dir(follow_symlinks=False):
                batch.append(LocalDirectory(Path(item.path), batch_size=self._batch_size))
            elif item.is_file(follow_symlinks=False):
                batch.append(LocalFile(Path(item.path)))
            else:
                logger.debug("Skipping special entry %s", item.path)
            if len(batch) >= self._batch_size:
                return batch
        self._exhausted = True
        self._iterator.close()
        return batch

    async def read_entries(self) -> List[SourceEntry]:
        return await asyncio.to_thread(self._next_batch)


class LocalDirectory(SourceDirectory):
    def __init__(self, path: Path, *, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self.path = Path(path)
        self.name = self.path.name
        self._batch_size = batch_size

    def create_reader(self) -> DirectoryReader:
        return _LocalDirectoryReader(self.path, self._batch_size)


def local_items(paths: Iterable[Path], *, batch_size: int = DEFAULT_BATCH_SIZE) -> List[SourceEntry]:
    """Wrap local paths the way a drop event hands over its top-level items."""
    items: List[SourceEntry] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            items.append(LocalDirectory(path, batch_size=batch_size))
        else:
            items.append(LocalFile(path))
    return items


# -------------------------
# in-memory / multipart
# -------------------------
class MemoryFile(SourceFile):
    def __init__(self, name: str, data: bytes = b"") -> None:
        self.name = name
        self._data = data

    @property
    def size(self) -> Optional[int]:
        return len(self._data)

    def open(self) -> BinaryIO:
        return BytesIO(self._data)


class StreamFile(SourceFile):
    """File handle backed by an already open stream, e.g. a multipart part."""

    def __init__(self, name: str, stream: BinaryIO, size: Optional[int] = None) -> None:
        self.name = name
        self._stream = stream
        self._size = size

    @property
    def size(self) -> Optional[int]:
        return self._size

    def open(self) -> BinaryIO:
        try:
            self._stream.seek(0)
        except (AttributeError, OSError):
            pass
        return self._stream


class _MemoryDirectoryReader(DirectoryReader):
    def __init__(self, children: List[SourceEntry], batch_size: int) -> None:
        self._children = children
        self._batch_size = max(1, batch_size)
        self._offset = 0

    async def read_entries(self) -> List[SourceEntry]:
        await asyncio.sleep(0)
        batch = self._children[self._offset:self._offset + self._batch_size]
        self._offset += len(batch)
        return batch


class MemoryDirectory(SourceDirectory):
    def __init__(
        self,
        name: str,
        children: Optional[List[SourceEntry]] = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self.name = name
        self.children: List[SourceEntry] = list(children or [])
        self.batch_size = batch_size

    def create_reader(self) -> DirectoryReader:
        return _MemoryDirectoryReader(self.children, self.batch_size)


def _split_relative(relative_path: str) -> List[str]:
    parts = [part for part in PurePosixPath(relative_path.replace("\\", "/")).parts if part not in {"", "/", "."}]
    if ".." in parts:
        raise ValueError(f"Path traversal detected: {relative_path}")
    if not parts:
        raise ValueError("Relative path cannot be empty")
    return parts


def build_tree(
    parts: Iterable[Tuple[str, SourceFile]],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> List[SourceEntry]:
    """Rebuild top-level drop items from `(relative_path, file)` pairs.

    A folder picker posts every file with its path relative to the picked
    folder; files sharing a leading segment end up under one directory handle.
    """
    roots: List[SourceEntry] = []
    directories: Dict[Tuple[str, ...], MemoryDirectory] = {}
    seen_files: set[Tuple[str, ...]] = set()

    for relative_path, handle in parts:
        segments = _split_relative(relative_path)
        key = tuple(segments)
        if key in seen_files:
            raise ValueError(f"Duplicate upload path: {relative_path}")
        seen_files.add(key)

        siblings = roots
        for depth in range(len(segments) - 1):
            dir_key = key[:depth + 1]
            directory = directories.get(dir_key)
            if directory is None:
                directory = MemoryDirectory(segments[depth], batch_size=batch_size)
                directories[dir_key] = directory
                siblings.append(directory)
            siblings = directory.children
        if handle.name != segments[-1]:
            handle.name = segments[-1]
        siblings.append(handle)
    return roots
