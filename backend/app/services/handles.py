from typing import Optional
import re
from urllib.parse import urlparse

from .errors import InvalidHandle

CANONICAL_PROFILE_PREFIX = "https://www.linkedin.com/in/"

# Public-identifier alphabet: letters, digits, hyphen, underscore, and
# percent-escapes for non-ASCII vanity names.
HANDLE_RE = re.compile(r"^[A-Za-z0-9\-_%]{3,100}$")

LINKEDIN_HOST_RE = re.compile(r"^(?:[a-z]{2,3}\.|www\.)?linkedin\.com$")


def looks_like_url(value: str) -> bool:
    """
    Heuristic to check if a string looks like a URL rather than a bare handle.
    """
    if not value:
        return False

    s = value.strip().lower()

    if s.startswith("http://") or s.startswith("https://"):
        return True

    if s.startswith("www.") or "linkedin.com" in s:
        return True

    return "/" in s


def extract_handle(value: str) -> Optional[str]:
    """
    Pull the public identifier out of a LinkedIn profile URL or bare handle.

    Query strings, fragments and trailing slashes are discarded and the result
    is lower-cased, so every spelling of the same profile URL yields the same
    handle. Returns None when the input is not a /in/<handle> profile path.
    """
    if not value or not isinstance(value, str):
        return None

    s = value.strip()
    if not s:
        return None

    if not looks_like_url(s):
        return s.lower() if HANDLE_RE.match(s) else None

    if "://" not in s:
        s = f"https://{s}"

    try:
        parsed = urlparse(s)
    except ValueError:
        return None

    if parsed.scheme not in ("http", "https"):
        return None

    host = (parsed.hostname or "").lower()
    if not LINKEDIN_HOST_RE.match(host):
        return None

    segments = [seg for seg in parsed.path.split("/") if seg]
    # Only /in/<handle> or /in/<handle>/ are profile pages; /in/x/details/... are not
    if len(segments) != 2 or segments[0].lower() != "in":
        return None

    handle = segments[1]
    if not HANDLE_RE.match(handle):
        return None
    return handle.lower()


def normalize_handle(value: str) -> str:
    handle = extract_handle(value)
    if not handle:
        raise InvalidHandle("Invalid LinkedIn profile URL")
    return handle


def canonical_profile_url(value: str) -> str:
    """Normalise any accepted spelling to https://www.linkedin.com/in/<handle>."""
    return f"{CANONICAL_PROFILE_PREFIX}{normalize_handle(value)}"


def is_valid_profile_url(value: str) -> bool:
    return extract_handle(value) is not None
