"""
pantry: a persistent key-value cache with lazy expiry and typed retrieval.
"""

from pantry.exceptions import (
    ConfigurationError,
    DecodeError,
    EncodeError,
    InvalidKeyError,
    MissingValueError,
    PantryError,
)
from pantry.filestore import FileStore, LocalFileStore, MemoryFileStore
from pantry.pantry import Pantry
from pantry.storable import Storable
from pantry.types import Envelope, Expiry, RecordState, StorageRoot
from pantry.warehouse import Warehouse

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "DecodeError",
    "EncodeError",
    "Envelope",
    "Expiry",
    "FileStore",
    "InvalidKeyError",
    "LocalFileStore",
    "MemoryFileStore",
    "MissingValueError",
    "Pantry",
    "PantryError",
    "RecordState",
    "Storable",
    "StorageRoot",
    "Warehouse",
    "__version__",
]
