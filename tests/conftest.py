"""Pytest configuration, fakes and fixtures."""
import io
import json
import sys
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import Settings
from core.errors import ObjectNotFoundError, StorageError
from core.services import build_services
from core.storage import ArtifactStore, StoredObject
from tasks.runner import ToolResult

BROWSERTIME_SUMMARY = {
    "timings": {"fullyLoaded": {"median": 2450.0, "mean": 2450.0}},
    "googleWebVitals": {
        "ttfb": {"median": 120.5},
        "largestContentfulPaint": {"median": 980.0},
        "firstContentfulPaint": {"median": 640.0},
        "cumulativeLayoutShift": {"median": 0.05},
        "totalBlockingTime": {"median": 12.0},
    },
}

PAGEXRAY_SUMMARY = {"transferSize": {"median": 524288.0}}

SCREENSHOT_BYTES = b"\x89PNG\r\n\x1a\nfake-screenshot"


class InMemoryArtifactStore(ArtifactStore):
    """ArtifactStore keeping objects in a dict, with call counters for assertions."""

    def __init__(self, download_delay: float = 0):
        self.objects: Dict[str, dict] = {}
        self.download_delay = download_delay
        self.download_calls = 0
        self.failing_puts = set()
        self._lock = threading.Lock()

    def put(self, key, stream, content_type=None):
        if key in self.failing_puts:
            raise StorageError(f"Failed to upload {key}", cause=RuntimeError("bucket unavailable"))
        data = stream.read()
        with self._lock:
            self.objects[key] = {
                "data": data,
                "content_type": content_type,
                "last_modified": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
                "etag": f"etag-{len(data)}",
            }

    def get(self, key):
        with self._lock:
            obj = self.objects.get(key)
        if obj is None:
            raise ObjectNotFoundError(f"Object not found: {key}")
        return StoredObject(
            body=io.BytesIO(obj["data"]),
            content_type=obj["content_type"],
            last_modified=obj["last_modified"],
            etag=obj["etag"],
        )

    def delete(self, key):
        with self._lock:
            self.objects.pop(key, None)

    def exists(self, key):
        with self._lock:
            return key in self.objects

    def download(self, key, local_path):
        with self._lock:
            self.download_calls += 1
        if self.download_delay:
            time.sleep(self.download_delay)
        super().download(key, local_path)


class FakeSitespeedRunner:
    """
    Stands in for the sitespeed subprocess by writing a small result tree.

    Set ``browsertime``/``pagexray`` to None to omit a summary, or to a
    string to write it verbatim.
    """

    def __init__(self):
        self.exit_code = 0
        self.stderr = ""
        self.browsertime = BROWSERTIME_SUMMARY
        self.pagexray = PAGEXRAY_SUMMARY
        self.write_pages = True
        self.write_screenshot = True
        self.calls: List[dict] = []

    async def run(self, urls: Sequence[str], output_dir: Path) -> ToolResult:
        self.calls.append({"urls": list(urls), "output_dir": output_dir, "existed": output_dir.is_dir()})

        (output_dir / "index.html").write_text("<html>summary</html>")
        assets = output_dir / "assets"
        assets.mkdir(exist_ok=True)
        (assets / "style.css").write_text("body { color: #333; }")

        if self.write_pages:
            page = output_dir / "pages" / "example_com"
            shots = page / "data" / "screenshots" / "1"
            shots.mkdir(parents=True)
            (page / "index.html").write_text("<html>page</html>")
            if self.write_screenshot:
                (shots / "afterPageCompleteCheck.png").write_bytes(SCREENSHOT_BYTES)

        data = output_dir / "data"
        data.mkdir(exist_ok=True)
        _write_summary(data / "browsertime.summary-total.json", self.browsertime)
        _write_summary(data / "pagexray.summary-total.json", self.pagexray)

        return ToolResult(exit_code=self.exit_code, stderr=self.stderr)


def _write_summary(path: Path, content):
    if content is None:
        return
    if isinstance(content, str):
        path.write_text(content)
    else:
        path.write_text(json.dumps(content))


@pytest.fixture
def store():
    return InMemoryArtifactStore()


@pytest.fixture
def runner():
    return FakeSitespeedRunner()


@pytest.fixture
def scratch(tmp_path) -> Path:
    root = tmp_path / "scratch"
    root.mkdir()
    return root


@pytest.fixture
def test_settings(scratch) -> Settings:
    return Settings(
        SCRATCH_ROOT=str(scratch),
        SWEEP_ENABLED=False,
        S3_BUCKET_NAME="test-bucket",
    )


@pytest.fixture
def services(test_settings, store, runner):
    return build_services(test_settings, store=store, runner=runner)


@pytest.fixture
def client(services):
    from fastapi.testclient import TestClient
    from main import create_app

    with TestClient(create_app(services=services)) as test_client:
        yield test_client
