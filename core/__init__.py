# Core package - Infrastructure components
from .archive import Archive, ArchiveEntry, open_archive, pack
from .cache import ResultCache, ServedFile
from .errors import (
    InternalFailureError,
    InvalidInputError,
    NotFoundError,
    ObjectNotFoundError,
    Outcome,
    ServiceError,
    StorageError,
    ToolFailureError,
)
from .locks import KeyedLock
from .storage import ArtifactStore, S3ArtifactStore, StoredObject
from .sweeper import TempDirSweeper
from .workspace import Workspace, WorkspaceManager

__all__ = [
    # Archive
    "Archive",
    "ArchiveEntry",
    "open_archive",
    "pack",
    # Cache
    "ResultCache",
    "ServedFile",
    "KeyedLock",
    # Storage
    "ArtifactStore",
    "S3ArtifactStore",
    "StoredObject",
    # Workspaces
    "Workspace",
    "WorkspaceManager",
    "TempDirSweeper",
    # Errors
    "ServiceError",
    "InvalidInputError",
    "NotFoundError",
    "ToolFailureError",
    "StorageError",
    "ObjectNotFoundError",
    "InternalFailureError",
    "Outcome",
]
