"""Extraction of YouTube video identifiers from free-form URLs."""
from __future__ import annotations

import re
from typing import Any, Optional

from tubethumb.domain.thumbnails import VIDEO_ID_LENGTH

# The greedy prefix makes the last marker win; the token ends at the first
# '#', '&' or '?' so query parameters and fragments are dropped.
_VIDEO_ID_PATTERN: re.Pattern[str] = re.compile(
    r"^.*((youtu\.be/)|(v/)|(/u/\w/)|(embed/)|(watch\?))\??v?=?([^#&?]*).*"
)
_TOKEN_GROUP: int = 7

# Identifiers accepted from API paths, where no URL markers are involved.
_BARE_ID_PATTERN: re.Pattern[str] = re.compile(r"[A-Za-z0-9_-]{11}")


def extract_video_id(raw_url: Any) -> Optional[str]:
    """Extract the 11-character video identifier from a YouTube URL.

    Parameters
    ----------
    raw_url: Any
        Text typed or pasted by the user.

    Returns
    -------
    Optional[str]
        The identifier, or ``None`` when no marker is present or the captured
        token is not exactly 11 characters long.

    Notes
    -----
    - Recognized markers: ``watch?v=``, ``youtu.be/``, ``/v/``, ``/embed/`` and
      ``/u/<x>/``. A bare identifier without a marker is rejected.
    - Never raises for malformed input, including non-string values.
    """

    if not isinstance(raw_url, str):
        return None
    match: Optional[re.Match[str]] = _VIDEO_ID_PATTERN.match(raw_url.strip())
    if match is None:
        return None
    token: str = match.group(_TOKEN_GROUP)
    return token if len(token) == VIDEO_ID_LENGTH else None


def is_video_id(value: str) -> bool:
    """Return True if ``value`` looks like a bare video identifier."""

    return _BARE_ID_PATTERN.fullmatch(value) is not None
