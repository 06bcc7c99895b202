# Parsing subpackage - sitespeed.io output documents
from .sitespeed import (
    BrowsertimeSummary,
    PageXraySummary,
    first_page_dir,
    load_browsertime_summary,
    load_pagexray_summary,
)

__all__ = [
    "BrowsertimeSummary",
    "PageXraySummary",
    "first_page_dir",
    "load_browsertime_summary",
    "load_pagexray_summary",
]
