"""
Parsing of sitespeed.io summary documents

Only the medians the API reports are modelled; everything else in the
documents is ignored, so additions to sitespeed's output do not break parsing.
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.errors import ToolFailureError

logger = logging.getLogger(__name__)

BROWSERTIME_SUMMARY = Path("data") / "browsertime.summary-total.json"
PAGEXRAY_SUMMARY = Path("data") / "pagexray.summary-total.json"
SCREENSHOT = Path("data") / "screenshots" / "1" / "afterPageCompleteCheck.png"


class _SummaryModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Metric(_SummaryModel):
    median: float = 0


class Timings(_SummaryModel):
    fully_loaded: Optional[Metric] = Field(default=None, alias="fullyLoaded")


class GoogleWebVitals(_SummaryModel):
    ttfb: Optional[Metric] = None
    largest_contentful_paint: Optional[Metric] = Field(default=None, alias="largestContentfulPaint")
    first_contentful_paint: Optional[Metric] = Field(default=None, alias="firstContentfulPaint")
    cumulative_layout_shift: Optional[Metric] = Field(default=None, alias="cumulativeLayoutShift")
    total_blocking_time: Optional[Metric] = Field(default=None, alias="totalBlockingTime")


class BrowsertimeSummary(_SummaryModel):
    timings: Optional[Timings] = None
    google_web_vitals: Optional[GoogleWebVitals] = Field(default=None, alias="googleWebVitals")


class PageXraySummary(_SummaryModel):
    transfer_size: Optional[Metric] = Field(default=None, alias="transferSize")


def median(metric: Optional[Metric]) -> float:
    return metric.median if metric is not None else 0.0


def first_page_dir(output_dir: Path) -> Path:
    """
    Return the first page result directory sitespeed produced.

    Raises:
        ToolFailureError: if ``pages/`` is missing or holds no directory
    """
    pages_dir = output_dir / "pages"
    try:
        pages = sorted(p for p in pages_dir.iterdir() if p.is_dir())
    except OSError:
        pages = []

    if not pages:
        raise ToolFailureError("Web vital data not found")
    return pages[0]


def load_browsertime_summary(output_dir: Path) -> BrowsertimeSummary:
    """
    Read the timing and web vitals summary. The document is required.

    Raises:
        ToolFailureError: if the file is missing or cannot be parsed
    """
    path = output_dir / BROWSERTIME_SUMMARY
    try:
        raw = path.read_bytes()
    except OSError:
        raise ToolFailureError("Web vital data not found")

    try:
        return BrowsertimeSummary.model_validate_json(raw)
    except ValidationError as e:
        raise ToolFailureError("Failed to parse web vital data", details=str(e))


def load_pagexray_summary(output_dir: Path) -> PageXraySummary:
    """
    Read the transfer size summary. Missing or broken documents yield an
    empty summary so the transfer size reports as zero.
    """
    path = output_dir / PAGEXRAY_SUMMARY
    if not path.is_file():
        return PageXraySummary()

    try:
        return PageXraySummary.model_validate_json(path.read_bytes())
    except (OSError, ValidationError) as e:
        logger.warning(f"⚠️ Ignoring unreadable pagexray summary {path}: {e}")
        return PageXraySummary()
