"""Tests for identifier and URL validation."""
import pytest

from core.errors import InvalidInputError
from utils.validation import MAX_URLS, validate_identifier, validate_urls


class TestIdentifier:
    """Test suite for identifier checks."""

    @pytest.mark.parametrize("identifier", ["abc", "run-2024.05.01", "a.b", "ID_42"])
    def test_accepts_safe_identifiers(self, identifier):
        assert validate_identifier(identifier) == identifier

    @pytest.mark.parametrize("identifier", ["", "..", "a..b", "a/b", "a\\b", "../etc"])
    def test_rejects_unsafe_identifiers(self, identifier):
        with pytest.raises(InvalidInputError, match="Invalid ID"):
            validate_identifier(identifier)


class TestUrls:
    """Test suite for URL list checks."""

    def test_accepts_up_to_five_urls(self):
        urls = [f"https://example.com/{i}" for i in range(MAX_URLS)]
        assert validate_urls(urls) == urls

    def test_urls_are_returned_unchanged(self):
        # AnyHttpUrl would add a trailing slash; the tool gets the raw string
        assert validate_urls(["https://example.com"]) == ["https://example.com"]

    def test_rejects_empty_list(self):
        with pytest.raises(InvalidInputError, match="between 1 and 5"):
            validate_urls([])

    def test_rejects_too_many(self):
        with pytest.raises(InvalidInputError, match="between 1 and 5"):
            validate_urls(["https://example.com"] * (MAX_URLS + 1))

    @pytest.mark.parametrize(
        "url", ["example.com", "not a url", "ftp://example.com/file", "", "javascript:alert(1)"]
    )
    def test_rejects_invalid_urls(self, url):
        with pytest.raises(InvalidInputError, match="Invalid URL"):
            validate_urls(["https://ok.example", url])
