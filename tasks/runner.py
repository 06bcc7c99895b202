"""
sitespeed.io process invocation
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from core.errors import ToolFailureError

logger = logging.getLogger(__name__)

# Fixed run profile: one iteration at desktop size with video and visual
# metrics, in a fresh Chrome profile
SITESPEED_FLAGS = [
    "--plugins.add", "analysisstorer",
    "--visualMetrics",
    "--video",
    "--viewPort", "1920x1080",
    "--browsertime.chrome.cleanUserDataDir=true",
    "--browsertime.iterations", "1",
]


@dataclass
class ToolResult:
    exit_code: int
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ToolRunner(Protocol):
    """Runs the analysis tool against an output directory."""

    async def run(self, urls: Sequence[str], output_dir: Path) -> ToolResult:
        ...


class SitespeedRunner:
    """
    Runs ``node <sitespeed_bin> ...`` as a subprocess.

    The process is killed when ``timeout`` expires or when the awaiting task
    is cancelled, so an aborted request never leaves a browser behind.
    """

    def __init__(
        self,
        node_bin: str = "node",
        sitespeed_bin: str = "sitespeed.io",
        timeout: Optional[float] = None,
    ):
        self.node_bin = node_bin
        self.sitespeed_bin = sitespeed_bin
        self.timeout = timeout

    def build_args(self, urls: Sequence[str], output_dir: Path) -> List[str]:
        return [
            self.sitespeed_bin,
            "--outputFolder", str(output_dir),
            *SITESPEED_FLAGS,
            *urls,
        ]

    async def run(self, urls: Sequence[str], output_dir: Path) -> ToolResult:
        args = self.build_args(urls, output_dir)
        logger.debug(f"Running {self.node_bin} {' '.join(args)}")

        try:
            process = await asyncio.create_subprocess_exec(
                self.node_bin,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ToolFailureError("Failed to run sitespeed analysis", details=str(e)) from e

        started = time.time()
        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await self._kill(process)
            raise ToolFailureError(
                "Failed to run sitespeed analysis",
                details=f"sitespeed did not finish within {self.timeout:g} seconds",
            )
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        logger.info(
            f"⏱️  sitespeed exited with code {process.returncode} "
            f"after {time.time() - started:.1f}s"
        )
        return ToolResult(
            exit_code=process.returncode,
            stderr=stderr.decode("utf-8", errors="replace") if stderr else "",
        )

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process):
        if process.returncode is not None:
            return
        logger.warning(f"⚠️ Killing sitespeed process {process.pid}")
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()
