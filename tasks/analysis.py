"""
Sitespeed analysis pipeline
Runs sitespeed.io for one identifier and publishes the results
"""

import asyncio
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Union

from api.models import AnalysisResponse
from core.archive import pack
from core.cache import ResultCache
from core.errors import InternalFailureError, Outcome, StorageError, ToolFailureError
from core.locks import KeyedLock
from core.storage import ArtifactStore, result_key, screenshot_key
from core.workspace import WorkspaceManager
from tasks.runner import ToolRunner
from utils.parsing.sitespeed import (
    SCREENSHOT,
    BrowsertimeSummary,
    PageXraySummary,
    first_page_dir,
    load_browsertime_summary,
    load_pagexray_summary,
    median,
)
from utils.validation.inputs import validate_urls

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    START = "START"
    WORKSPACE_READY = "WORKSPACE_READY"
    TOOL_RUNNING = "TOOL_RUNNING"
    TOOL_DONE = "TOOL_DONE"
    METRICS_PARSED = "METRICS_PARSED"
    ARTIFACTS_UPLOADED = "ARTIFACTS_UPLOADED"
    DONE = "DONE"
    FAILED = "FAILED"


class AnalysisPipeline:
    """
    Orchestrates one analysis job.

    The steps run strictly in order: workspace, sitespeed, summary parsing,
    uploads, cache invalidation. Jobs for the same identifier are serialized;
    jobs for different identifiers run independently. The workspace and the
    temporary archive are removed however the job ends.
    """

    def __init__(
        self,
        store: ArtifactStore,
        workspaces: WorkspaceManager,
        cache: ResultCache,
        runner: ToolRunner,
        scratch_root: Union[str, Path],
        locks: Optional[KeyedLock] = None,
    ):
        self.store = store
        self.workspaces = workspaces
        self.cache = cache
        self.runner = runner
        self.scratch_root = Path(scratch_root)
        self.locks = locks or KeyedLock()

    async def analyze(self, identifier: str, urls: Sequence[str]) -> AnalysisResponse:
        """
        Run sitespeed for ``urls`` and store the results under ``identifier``.

        Raises:
            InvalidInputError: bad URL list (nothing has been touched yet)
            ToolFailureError: sitespeed failed or produced no usable summary
            StorageError: uploading the result archive failed
            InternalFailureError: workspace or archive I/O failed
        """
        urls = validate_urls(urls)
        state = JobState.START

        async with self.locks.hold(identifier):
            try:
                logger.info(f"🚀 Starting sitespeed analysis for {identifier} with URLs: {', '.join(urls)}")
                async with self.workspaces.session(identifier) as workspace:
                    state = JobState.WORKSPACE_READY

                    state = JobState.TOOL_RUNNING
                    await self._run_tool(identifier, urls, workspace.path)
                    state = JobState.TOOL_DONE

                    page_dir = first_page_dir(workspace.path)
                    browsertime = load_browsertime_summary(workspace.path)
                    pagexray = load_pagexray_summary(workspace.path)
                    state = JobState.METRICS_PARSED

                    await self._upload_screenshot(identifier, page_dir / SCREENSHOT)
                    await self._publish_archive(identifier, workspace.path)
                    state = JobState.ARTIFACTS_UPLOADED

                    self.cache.invalidate(identifier).log_failure(
                        logger, f"Failed to invalidate cached result for {identifier}"
                    )

                state = JobState.DONE
            except BaseException as e:
                logger.error(f"❌ Analysis for {identifier} failed in state {state.value}: {e}")
                raise

        logger.info(f"✅ Sitespeed analysis completed for {identifier}")
        return build_response(browsertime, pagexray)

    async def _run_tool(self, identifier: str, urls: Sequence[str], output_dir: Path):
        logger.info(f"🔧 Running sitespeed for {identifier}")
        result = await self.runner.run(urls, output_dir)
        if not result.ok:
            logger.error(f"Sitespeed failed (exit {result.exit_code}): {result.stderr}")
            raise ToolFailureError("Failed to run sitespeed analysis", details=result.stderr)

    async def _upload_screenshot(self, identifier: str, screenshot: Path) -> Outcome:
        """Screenshots are optional: a failed upload is logged and the job continues."""
        if not screenshot.is_file():
            logger.info(f"No screenshot produced for {identifier}")
            return Outcome.success()

        try:
            await asyncio.to_thread(
                self.store.upload_file, screenshot_key(identifier), screenshot, "image/png"
            )
        except (StorageError, OSError) as e:
            return Outcome.failure(e).log_failure(logger, "Failed to upload screenshot")
        return Outcome.success()

    async def _publish_archive(self, identifier: str, workspace_dir: Path):
        zip_path = self.scratch_root / f"{identifier}.zip"
        try:
            try:
                await asyncio.to_thread(pack, workspace_dir, zip_path)
            except OSError as e:
                raise InternalFailureError("Failed to create zip", details=str(e)) from e

            await asyncio.to_thread(
                self.store.upload_file, result_key(identifier), zip_path, "application/zip"
            )
        except StorageError as e:
            raise StorageError("Failed to upload zip", cause=e.cause or e) from e
        finally:
            outcome = await asyncio.to_thread(_remove_file, zip_path)
            outcome.log_failure(logger, f"Failed to remove {zip_path}")


def build_response(
    browsertime: BrowsertimeSummary, pagexray: PageXraySummary
) -> AnalysisResponse:
    """Pick the reported medians; anything sitespeed did not measure is 0."""
    vitals = browsertime.google_web_vitals
    timings = browsertime.timings

    return AnalysisResponse(
        ttfb=median(vitals.ttfb) if vitals else 0,
        largest_contentful_paint=median(vitals.largest_contentful_paint) if vitals else 0,
        first_contentful_paint=median(vitals.first_contentful_paint) if vitals else 0,
        cumulative_layout_shift=median(vitals.cumulative_layout_shift) if vitals else 0,
        fully_loaded=median(timings.fully_loaded) if timings else 0,
        transfer_size=median(pagexray.transfer_size),
    )


def _remove_file(path: Path) -> Outcome:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        return Outcome.failure(e)
    return Outcome.success()
