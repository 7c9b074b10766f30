"""
File store backends.

The cache engine never touches the filesystem directly; it goes through a
FileStore so that the storage roots can be injected (a real directory tree,
or an in-memory dict for tests and ephemeral use).

- LocalFileStore: real filesystem, atomic replace-on-write
- MemoryFileStore: dict-backed, same error semantics
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path, PurePath
from typing import Protocol, runtime_checkable


@runtime_checkable
class FileStore(Protocol):
    """Abstract get/put/delete/exists capability over paths.

    All failures surface as OSError (FileNotFoundError for missing paths).
    """

    def read_bytes(self, path: PurePath) -> bytes:
        """Return the full content of the file at `path`."""
        ...

    def write_bytes(self, path: PurePath, data: bytes) -> None:
        """Replace the file at `path` with `data`.

        Readers must never observe a partially written file.
        """
        ...

    def delete(self, path: PurePath) -> None:
        """Delete the file at `path`."""
        ...

    def exists(self, path: PurePath) -> bool:
        """Check whether a file or directory exists at `path`."""
        ...

    def make_dirs(self, path: PurePath) -> None:
        """Create the directory `path` and its parents (idempotent)."""
        ...

    def remove_tree(self, path: PurePath) -> None:
        """Delete the directory `path` and everything below it."""
        ...


class LocalFileStore:
    """FileStore backed by the local filesystem."""

    def read_bytes(self, path: PurePath) -> bytes:
        return Path(path).read_bytes()

    def write_bytes(self, path: PurePath, data: bytes) -> None:
        """Write to a sibling temp file, fsync, then atomically replace."""
        target = Path(path)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    def delete(self, path: PurePath) -> None:
        Path(path).unlink()

    def exists(self, path: PurePath) -> bool:
        return Path(path).exists()

    def make_dirs(self, path: PurePath) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def remove_tree(self, path: PurePath) -> None:
        shutil.rmtree(Path(path))


class MemoryFileStore:
    """Dict-backed FileStore.

    Directories are tracked explicitly so that writes into a directory that
    was never created fail the same way they do on disk.
    """

    def __init__(self) -> None:
        self._files: dict[PurePath, bytes] = {}
        self._dirs: set[PurePath] = set()

    @property
    def files(self) -> dict[PurePath, bytes]:
        """Snapshot of stored files, keyed by path."""
        return dict(self._files)

    def read_bytes(self, path: PurePath) -> bytes:
        path = PurePath(path)
        if path not in self._files:
            raise FileNotFoundError(str(path))
        return self._files[path]

    def write_bytes(self, path: PurePath, data: bytes) -> None:
        path = PurePath(path)
        if path.parent not in self._dirs:
            raise FileNotFoundError(str(path.parent))
        self._files[path] = bytes(data)

    def delete(self, path: PurePath) -> None:
        path = PurePath(path)
        if path not in self._files:
            raise FileNotFoundError(str(path))
        del self._files[path]

    def exists(self, path: PurePath) -> bool:
        path = PurePath(path)
        return path in self._files or path in self._dirs

    def make_dirs(self, path: PurePath) -> None:
        path = PurePath(path)
        if path in self._files:
            raise FileExistsError(str(path))
        self._dirs.add(path)
        self._dirs.update(path.parents)

    def remove_tree(self, path: PurePath) -> None:
        path = PurePath(path)
        if path not in self._dirs:
            raise FileNotFoundError(str(path))
        self._files = {
            p: data for p, data in self._files.items() if not p.is_relative_to(path)
        }
        self._dirs = {d for d in self._dirs if not d.is_relative_to(path)}
