"""
Per-job scratch directories for sitespeed runs
"""

import asyncio
import logging
import shutil
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Union

from core.errors import InternalFailureError, Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Workspace:
    identifier: str
    path: Path


class WorkspaceManager:
    """
    Creates and removes job workspaces under a scratch root.

    One directory per identifier: ``<root>/<identifier>``. The pipeline holds
    the per-identifier lock while a workspace exists, so a directory found at
    acquire time can only be the leftover of a crashed run.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(self, identifier: str) -> Path:
        return self.root / identifier

    def acquire(self, identifier: str) -> Workspace:
        path = self.path_for(identifier)

        if path.exists():
            logger.info(f"🧹 Removing leftover workspace {path}")
            shutil.rmtree(path, ignore_errors=True)

        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InternalFailureError("Failed to create directory", details=str(e)) from e

        logger.debug(f"Workspace ready: {path}")
        return Workspace(identifier=identifier, path=path)

    def release(self, workspace: Workspace) -> Outcome:
        """Remove the workspace tree. Never raises."""
        try:
            shutil.rmtree(workspace.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            return Outcome.failure(e)
        logger.debug(f"Workspace released: {workspace.path}")
        return Outcome.success()

    @asynccontextmanager
    async def session(self, identifier: str) -> AsyncIterator[Workspace]:
        """
        Acquire a workspace and release it on every exit path.

        Creation and removal run in a worker thread.
        """
        workspace = await asyncio.to_thread(self.acquire, identifier)
        try:
            yield workspace
        finally:
            outcome = await asyncio.to_thread(self.release, workspace)
            outcome.log_failure(
                logger, f"Failed to remove workspace {workspace.path}"
            )
