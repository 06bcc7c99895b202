# Utils package - Utility modules organized by domain
# Import from subpackages for convenience

from .parsing.sitespeed import load_browsertime_summary, load_pagexray_summary
from .validation.inputs import validate_identifier, validate_urls

__all__ = [
    "load_browsertime_summary",
    "load_pagexray_summary",
    "validate_identifier",
    "validate_urls",
]
