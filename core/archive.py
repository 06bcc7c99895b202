"""
Zip packaging of sitespeed result trees

pack() mirrors a workspace into a deterministic archive; open_archive()
serves entries back out of it with static-site semantics, so a request for a
directory transparently returns its index.html.
"""

import logging
import mimetypes
import os
import shutil
import time
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

logger = logging.getLogger(__name__)

INDEX_DOCUMENT = "index.html"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
_CHUNK_SIZE = 64 * 1024


def _raise_walk_error(error: OSError):
    raise error


def pack(source_dir: Union[str, Path], target_zip: Union[str, Path]) -> Path:
    """
    Build a zip archive from ``source_dir``.

    Every file and directory below the root gets an entry named by its
    forward-slash path relative to the root; directories end with ``/`` and
    the root itself has no entry. Files are deflated. Entries are written in
    sorted order and stamped with their UTC modification time.

    The archive is written to ``<target>.part`` and renamed into place on
    success, so ``target_zip`` is either complete or untouched. Any error
    aborts the whole operation.

    Returns:
        Path of the finished archive
    """
    source = Path(source_dir)
    target = Path(target_zip)
    partial = target.with_name(target.name + ".part")

    try:
        with zipfile.ZipFile(partial, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for dirpath, dirnames, filenames in os.walk(source, onerror=_raise_walk_error):
                current = Path(dirpath)
                # In place, so os.walk descends in the same order
                dirnames.sort()
                filenames.sort()
                for name in dirnames:
                    _write_entry(archive, source, current / name)
                for name in filenames:
                    _write_entry(archive, source, current / name)
        os.replace(partial, target)
        logger.debug(f"Packed {source} into {target}")
    except BaseException:
        try:
            partial.unlink()
        except FileNotFoundError:
            pass
        raise

    return target


def _write_entry(archive: zipfile.ZipFile, source: Path, path: Path):
    # from_file appends the trailing slash for directories
    info = zipfile.ZipInfo.from_file(
        path, path.relative_to(source).as_posix(), strict_timestamps=False
    )
    info.date_time = zip_timestamp(path.stat().st_mtime)

    if info.is_dir():
        archive.writestr(info, b"")
        return

    info.compress_type = zipfile.ZIP_DEFLATED
    with open(path, "rb") as src, archive.open(info, "w") as dest:
        shutil.copyfileobj(src, dest, _CHUNK_SIZE)


def zip_timestamp(mtime: float) -> tuple:
    """UTC ``date_time`` tuple for a zip entry, clamped to the format's range."""
    stamp = time.gmtime(mtime)[:6]
    if stamp[0] < 1980:
        return (1980, 1, 1, 0, 0, 0)
    if stamp[0] > 2107:
        return (2107, 12, 31, 23, 59, 58)
    return stamp


def normalize_logical_path(logical_path: Optional[str]) -> str:
    path = (logical_path or "").replace("\\", "/")
    return path or INDEX_DOCUMENT


def content_type_for(name: str) -> str:
    content_type, _ = mimetypes.guess_type(name)
    return content_type or DEFAULT_CONTENT_TYPE


@dataclass
class ArchiveEntry:
    """A resolved archive member."""

    info: zipfile.ZipInfo
    archive: "Archive"

    @property
    def name(self) -> str:
        return self.info.filename

    @property
    def size(self) -> int:
        return self.info.file_size

    @property
    def content_type(self) -> str:
        return content_type_for(self.info.filename)

    @property
    def last_modified(self) -> datetime:
        # pack() stores UTC
        return datetime(*self.info.date_time, tzinfo=timezone.utc)

    def open(self) -> BinaryIO:
        return self.archive.zipfile.open(self.info)


class Archive:
    """An open result archive. Use as a context manager or call close()."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.zipfile = zipfile.ZipFile(self.path)
        # Archive construction guarantees one entry per name
        self._entries = {info.filename: info for info in self.zipfile.infolist()}

    def __enter__(self) -> "Archive":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        self.zipfile.close()

    def names(self):
        return list(self._entries)

    def resolve(self, logical_path: Optional[str]) -> Optional[ArchiveEntry]:
        """
        Find the entry serving ``logical_path``.

        Lookup order:
        1. exact entry name (empty path means index.html)
        2. ``<path>/index.html`` unless the path already ends with a slash

        Returns:
            The entry, or None if neither name exists
        """
        path = normalize_logical_path(logical_path)

        info = self._entries.get(path)
        if info is None and not path.endswith("/"):
            info = self._entries.get(f"{path}/{INDEX_DOCUMENT}")

        if info is None:
            return None
        return ArchiveEntry(info=info, archive=self)

    def stream(self, entry: ArchiveEntry, chunk_size: int = _CHUNK_SIZE) -> Iterator[bytes]:
        """
        Yield the entry's bytes, then close the archive.

        The archive stays open for as long as the response body is being
        produced and is closed when the iterator finishes or is closed.
        """
        try:
            with entry.open() as handle:
                while True:
                    chunk = handle.read(chunk_size)
                    if not chunk:
                        break
                    yield chunk
        finally:
            self.close()


def open_archive(path: Union[str, Path]) -> Archive:
    """Open a zip for entry lookups. Raises zipfile.BadZipFile or OSError."""
    return Archive(path)
