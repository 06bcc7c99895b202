"""
Validation Package for the Sitespeed Result Service

Boundary checks applied before any workspace, store or cache is touched.

Modules:
- inputs: identifier and analysis request validation
"""

from .inputs import MAX_URLS, validate_identifier, validate_urls

__all__ = ["MAX_URLS", "validate_identifier", "validate_urls"]
