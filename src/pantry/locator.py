"""
Store locator: maps cache keys to file paths in the primary and legacy roots.

Layout is flat: <root>/<namespace>/<key>. The primary root receives every
write; the legacy root is only consulted on reads and cleared on deletes.
"""

from __future__ import annotations

from pathlib import Path, PurePath

from pantry.exceptions import InvalidKeyError
from pantry.filestore import FileStore, LocalFileStore
from pantry.logging import get_logger, log_context
from pantry.types import StorageRoot

logger = get_logger(__name__)

READ_ORDER: tuple[StorageRoot, ...] = (StorageRoot.PRIMARY, StorageRoot.LEGACY)


def validate_key(key: str) -> str:
    """Check that a key maps to exactly one file name.

    Args:
        key: The cache key.

    Returns:
        The key, unchanged.

    Raises:
        InvalidKeyError: If the key is empty or would escape the namespace.
    """
    if not isinstance(key, str) or not key:
        raise InvalidKeyError("Cache key must be a non-empty string", {"key": key})
    if key in (".", "..") or "/" in key or "\\" in key or "\x00" in key:
        raise InvalidKeyError(
            "Cache key must be a single file name", {"key": key}
        )
    return key


class StoreLocator:
    """Resolves keys to paths under two storage roots.

    Holds both root paths explicitly; nothing is looked up from global state.
    """

    def __init__(
        self,
        primary_root: str | PurePath,
        legacy_root: str | PurePath,
        namespace: str = "pantry",
        file_store: FileStore | None = None,
    ) -> None:
        """Initialize the locator.

        Args:
            primary_root: Durable root directory; all writes land here.
            legacy_root: Older root directory, read for compatibility only.
            namespace: Directory name under each root.
            file_store: Backend used for directory operations.
        """
        self.roots: dict[StorageRoot, PurePath] = {
            StorageRoot.PRIMARY: Path(primary_root),
            StorageRoot.LEGACY: Path(legacy_root),
        }
        self.namespace = namespace
        self.file_store: FileStore = file_store or LocalFileStore()

    @property
    def write_root(self) -> StorageRoot:
        """Root that receives writes."""
        return StorageRoot.PRIMARY

    def read_order(self) -> tuple[StorageRoot, ...]:
        """Roots to try on reads, most preferred first."""
        return READ_ORDER

    def directory(self, root: StorageRoot) -> PurePath:
        """Namespaced directory for a root."""
        return self.roots[root] / self.namespace

    def resolve(self, key: str, root: StorageRoot = StorageRoot.PRIMARY) -> PurePath:
        """Get the file path for a key in a root.

        Ensures the root's directory exists. A failure to create it is
        logged; the path is returned regardless and later I/O on it fails
        like any other missing file.

        Args:
            key: The cache key.
            root: Which root to resolve in.

        Returns:
            Path of the record file.
        """
        validate_key(key)
        directory = self.directory(root)
        try:
            self.file_store.make_dirs(directory)
        except OSError as e:
            with log_context(root=root.value):
                logger.warning(
                    "Couldn't create cache directory", path=str(directory), error=str(e)
                )
        return directory / key

    def clear_all(self) -> bool:
        """Delete both namespaced directories.

        Each root is attempted independently; errors are logged.

        Returns:
            True if neither directory remains.
        """
        cleared = True
        for root in READ_ORDER:
            directory = self.directory(root)
            if not self.file_store.exists(directory):
                continue
            with log_context(root=root.value):
                try:
                    self.file_store.remove_tree(directory)
                except OSError as e:
                    cleared = False
                    logger.warning(
                        "Error removing cache directory", path=str(directory), error=str(e)
                    )
                else:
                    logger.info("Removed cache directory", path=str(directory))
        return cleared
