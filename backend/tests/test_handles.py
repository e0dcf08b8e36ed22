"""
Tests for handles.py - LinkedIn URL to canonical handle normalisation.
"""
import pytest

from app.services.errors import InvalidHandle
from app.services.handles import (
    canonical_profile_url,
    extract_handle,
    is_valid_profile_url,
    looks_like_url,
    normalize_handle,
)


class TestEquivalentSpellings:
    """Every spelling of the same profile URL yields one handle."""

    @pytest.mark.parametrize(
        "value",
        [
            "https://www.linkedin.com/in/jane-doe",
            "https://www.linkedin.com/in/jane-doe/",
            "https://www.linkedin.com/in/jane-doe?utm_source=share",
            "https://www.linkedin.com/in/jane-doe/?trk=public_profile#experience",
            "http://linkedin.com/in/jane-doe",
            "linkedin.com/in/jane-doe/",
            "www.linkedin.com/in/Jane-Doe",
            "https://uk.linkedin.com/in/jane-doe",
            "  https://www.linkedin.com/in/jane-doe  ",
            "jane-doe",
        ],
    )
    def test_spellings_normalize_to_same_handle(self, value):
        assert normalize_handle(value) == "jane-doe"

    def test_canonical_url(self):
        assert (
            canonical_profile_url("linkedin.com/in/Jane-Doe/?x=1")
            == "https://www.linkedin.com/in/jane-doe"
        )


class TestRejectedInputs:
    @pytest.mark.parametrize(
        "value",
        [
            "",
            "   ",
            "https://www.linkedin.com/company/acme",
            "https://www.linkedin.com/in/",
            "https://www.linkedin.com/in/jane-doe/details/experience",
            "https://example.com/in/jane-doe",
            "https://linkedin.com.evil.io/in/jane-doe",
            "ftp://linkedin.com/in/jane-doe",
            "jd",
            "jane doe",
        ],
    )
    def test_invalid_inputs_raise_invalid_handle(self, value):
        with pytest.raises(InvalidHandle):
            normalize_handle(value)

    def test_invalid_handle_is_tagged_for_clients(self):
        with pytest.raises(InvalidHandle) as exc:
            normalize_handle("https://www.linkedin.com/company/acme")
        assert exc.value.code == "INVALID_LINKEDIN_URL"
        assert exc.value.status_code == 400

    def test_extract_handle_returns_none_for_non_strings(self):
        assert extract_handle(None) is None
        assert is_valid_profile_url("https://www.linkedin.com/in/jane-doe") is True
        assert is_valid_profile_url("https://www.linkedin.com/feed/") is False


class TestLooksLikeUrl:
    def test_bare_handle_is_not_url(self):
        assert looks_like_url("jane-doe") is False

    def test_domain_without_scheme_is_url(self):
        assert looks_like_url("linkedin.com/in/jane-doe") is True
