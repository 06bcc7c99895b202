"""
Background cleanup of leftover Chromium profile directories

Each sitespeed run starts Chrome with a clean user data dir. A crashed or
killed browser leaves that directory behind in the system temp dir, so a
periodic sweep removes the ones that are older than a few minutes.
"""

import asyncio
import logging
import shutil
import time
from pathlib import Path
from typing import Optional, Union

from core.errors import Outcome

logger = logging.getLogger(__name__)


class TempDirSweeper:
    """Removes stale ``<prefix>*`` directories below ``root``."""

    def __init__(
        self,
        root: Union[str, Path],
        prefix: str = ".org.chromium.Chromium.",
        max_age_seconds: float = 300,
        interval_seconds: float = 300,
    ):
        self.root = Path(root)
        self.prefix = prefix
        self.max_age_seconds = max_age_seconds
        self.interval_seconds = interval_seconds

    def sweep_once(self, now: Optional[float] = None) -> int:
        """
        Run a single pass.

        Returns:
            Number of directories removed
        """
        now = time.time() if now is None else now
        removed = 0

        try:
            candidates = [p for p in self.root.iterdir() if p.name.startswith(self.prefix)]
        except OSError as e:
            logger.error(f"❌ Failed to read temp dir for cleanup: {e}")
            return 0

        for path in candidates:
            try:
                if not path.is_dir() or path.is_symlink():
                    continue
                age = now - path.stat().st_mtime
            except OSError as e:
                logger.warning(f"⚠️ Cannot inspect {path}: {e}")
                continue

            if age <= self.max_age_seconds:
                continue

            outcome = self._remove(path)
            if outcome.ok:
                removed += 1
                logger.info(f"🧹 Cleaned up Chromium temp directory ({int(age // 60)}min old): {path}")
            else:
                outcome.log_failure(logger, f"Failed to clean up {path}")

        return removed

    @staticmethod
    def _remove(path: Path) -> Outcome:
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            return Outcome.failure(e)
        return Outcome.success()

    async def run_forever(self):
        """Sweep now, then every ``interval_seconds`` until cancelled."""
        logger.info(
            f"⏲️  Chromium temp file cleanup scheduled every {self.interval_seconds:g}s "
            f"in {self.root}"
        )
        while True:
            try:
                await asyncio.to_thread(self.sweep_once)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"❌ Sweep pass failed: {e}")
            await asyncio.sleep(self.interval_seconds)
