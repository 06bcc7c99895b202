"""
Boundary validation for identifiers and analysis requests

Identifiers double as storage-key and filesystem path segments, so they are
checked once when a request enters the service and trusted afterwards.
"""

from typing import List, Sequence

from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from core.errors import InvalidInputError

MAX_URLS = 5

_url_adapter = TypeAdapter(AnyHttpUrl)


def validate_identifier(identifier: str) -> str:
    """Reject identifiers that could escape their path segment."""
    if (
        not identifier
        or ".." in identifier
        or "/" in identifier
        or "\\" in identifier
    ):
        raise InvalidInputError("Invalid ID")
    return identifier


def validate_urls(urls: Sequence[str]) -> List[str]:
    """
    Check an analysis request's URL list.

    Returns the URLs unchanged (sitespeed receives exactly what the client
    sent), raising InvalidInputError on the first problem.
    """
    if not urls or len(urls) > MAX_URLS:
        raise InvalidInputError(f"URLs must be between 1 and {MAX_URLS} items")

    for url in urls:
        if not isinstance(url, str):
            raise InvalidInputError(f"Invalid URL: {url}")
        try:
            _url_adapter.validate_python(url)
        except ValidationError:
            raise InvalidInputError(f"Invalid URL: {url}")

    return list(urls)
