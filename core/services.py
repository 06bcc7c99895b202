"""
Process-wide service wiring

One Services instance is built at startup and handed to the routes through
FastAPI dependencies; nothing in the core reaches for global state.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from config import Settings
from core.cache import ResultCache
from core.storage import ArtifactStore, S3ArtifactStore
from core.sweeper import TempDirSweeper
from core.workspace import WorkspaceManager
from tasks.analysis import AnalysisPipeline
from tasks.runner import SitespeedRunner, ToolRunner


@dataclass
class Services:
    settings: Settings
    store: ArtifactStore
    cache: ResultCache
    pipeline: AnalysisPipeline
    sweeper: Optional[TempDirSweeper] = None


def build_services(
    settings: Settings,
    store: Optional[ArtifactStore] = None,
    runner: Optional[ToolRunner] = None,
) -> Services:
    """
    Assemble the store, cache, pipeline and sweeper from settings.

    ``store`` and ``runner`` replace the S3 store and the sitespeed
    subprocess, which is how the tests run the service without either.
    """
    scratch_root = Path(settings.SCRATCH_ROOT)

    if store is None:
        store = S3ArtifactStore.from_settings(settings)
    if runner is None:
        runner = SitespeedRunner(
            node_bin=settings.NODE_BIN,
            sitespeed_bin=settings.SITESPEED_BIN,
            timeout=settings.TOOL_TIMEOUT_SECONDS or None,
        )

    cache = ResultCache(store, scratch_root / settings.CACHE_DIRNAME)
    pipeline = AnalysisPipeline(
        store=store,
        workspaces=WorkspaceManager(scratch_root / settings.WORKSPACE_DIRNAME),
        cache=cache,
        runner=runner,
        scratch_root=scratch_root,
    )

    sweeper = None
    if settings.SWEEP_ENABLED:
        sweeper = TempDirSweeper(
            root=settings.SWEEP_ROOT,
            prefix=settings.SWEEP_PREFIX,
            max_age_seconds=settings.SWEEP_MAX_AGE_SECONDS,
            interval_seconds=settings.SWEEP_INTERVAL_SECONDS,
        )

    return Services(
        settings=settings,
        store=store,
        cache=cache,
        pipeline=pipeline,
        sweeper=sweeper,
    )
