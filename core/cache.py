"""
Local result cache for the Sitespeed Result Service

Result archives live in the artifact store; the read path mirrors each one to
local disk on first access and serves every following request from there.
"""

import asyncio
import logging
import os
import zipfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, Union
from uuid import uuid4

from core.archive import open_archive
from core.errors import NotFoundError, Outcome
from core.storage import ArtifactStore, result_key

logger = logging.getLogger(__name__)

_MAX_FETCH_ATTEMPTS = 3


@dataclass
class ServedFile:
    """One archive entry ready to be streamed to a client."""

    name: str
    chunks: Iterator[bytes]
    content_type: str
    last_modified: datetime
    size: int
    close: Callable[[], None]


class ResultCache:
    """
    Lazily materialized local copies of ``results/<id>/result.zip``.

    A cached archive is either complete or absent: downloads are written to a
    unique temporary name and renamed into place once finished. Concurrent
    misses for the same identifier share one download; misses for different
    identifiers download in parallel.

    Every invalidate() bumps the identifier's generation. A download that
    finishes after its generation moved on is discarded and fetched again, so
    a deleted or replaced archive never lands back in the cache.
    """

    def __init__(self, store: ArtifactStore, root: Union[str, Path]):
        self.store = store
        self.root = Path(root)
        self._inflight: Dict[str, "asyncio.Task[Path]"] = {}
        self._generations: Dict[str, int] = {}

    def path_for(self, identifier: str) -> Path:
        return self.root / f"{identifier}.zip"

    def is_cached(self, identifier: str) -> bool:
        return self.path_for(identifier).is_file()

    def generation(self, identifier: str) -> int:
        return self._generations.get(identifier, 0)

    async def ensure(self, identifier: str) -> Path:
        """
        Return the local archive path for ``identifier``, downloading it first
        if needed.

        Raises:
            NotFoundError: no result archive exists for the identifier
            StorageError: the download failed for another reason
        """
        path = self.path_for(identifier)
        if path.is_file():
            return path

        task = self._inflight.get(identifier)
        if task is None:
            task = asyncio.ensure_future(self._fetch(identifier, path))
            self._inflight[identifier] = task
            task.add_done_callback(lambda done: self._fetch_done(identifier, done))
        else:
            logger.debug(f"Joining in-flight download for {identifier}")

        # A caller that goes away must not cancel the download for the others
        return await asyncio.shield(task)

    def _fetch_done(self, identifier: str, task: "asyncio.Task[Path]"):
        if self._inflight.get(identifier) is task:
            del self._inflight[identifier]
        if not task.cancelled():
            # Marks the exception as retrieved when every waiter has gone
            task.exception()

    async def _fetch(self, identifier: str, path: Path) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)

        for _ in range(_MAX_FETCH_ATTEMPTS):
            generation = self.generation(identifier)
            partial = path.with_name(f"{path.name}.{uuid4().hex}.part")

            logger.info(f"⬇️  Cache miss for {identifier}, downloading result archive")
            try:
                await asyncio.to_thread(self.store.download, result_key(identifier), partial)
                if self.generation(identifier) == generation:
                    os.replace(partial, path)
                    logger.info(f"💾 Cached result archive for {identifier}")
                    return path
            finally:
                try:
                    partial.unlink()
                except FileNotFoundError:
                    pass

            logger.info(f"Result {identifier} changed during download, fetching again")

        raise NotFoundError(f"Result {identifier} kept changing while downloading")

    async def serve(self, identifier: str, logical_path: Optional[str]) -> ServedFile:
        """
        Resolve ``logical_path`` inside the identifier's archive.

        The returned chunk iterator owns the open archive and closes it when
        exhausted; call ``close`` if the body is never consumed.
        """
        archive = await self._open(identifier)

        entry = archive.resolve(logical_path)
        if entry is None:
            archive.close()
            raise NotFoundError(f"{logical_path or 'index.html'} not found in result {identifier}")

        return ServedFile(
            name=entry.name,
            chunks=archive.stream(entry),
            content_type=entry.content_type,
            last_modified=entry.last_modified,
            size=entry.size,
            close=archive.close,
        )

    async def _open(self, identifier: str):
        # One retry covers an invalidation landing between ensure() and open
        for attempt in range(2):
            path = await self.ensure(identifier)
            try:
                return open_archive(path)
            except FileNotFoundError as e:
                if attempt:
                    raise NotFoundError() from e
            except zipfile.BadZipFile as e:
                logger.warning(f"⚠️ Cached archive for {identifier} is unreadable, dropping it: {e}")
                self.invalidate(identifier)
                raise NotFoundError() from e

    def invalidate(self, identifier: str) -> Outcome:
        """Drop the local copy of an identifier's archive. Idempotent."""
        self._generations[identifier] = self.generation(identifier) + 1
        path = self.path_for(identifier)
        try:
            path.unlink()
        except FileNotFoundError:
            return Outcome.success()
        except OSError as e:
            return Outcome.failure(e)
        logger.info(f"🧹 Invalidated cached archive for {identifier}")
        return Outcome.success()
