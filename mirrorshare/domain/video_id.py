from __future__ import annotations

import re
from typing import Any, Optional

from mirrorshare.domain.models import VIDEO_ID_RE, VideoReference


# Order matters: first match wins. Each URL shape anchors on its own marker,
# the bare id pattern must cover the whole input.
_PATTERNS = (
    re.compile(r"youtube\.com/watch\?v=([A-Za-z0-9_-]+)", re.IGNORECASE),
    re.compile(r"youtube\.com/embed/([A-Za-z0-9_-]+)", re.IGNORECASE),
    re.compile(r"youtube\.com/v/([A-Za-z0-9_-]+)", re.IGNORECASE),
    re.compile(r"youtube\.com/shorts/([A-Za-z0-9_-]+)", re.IGNORECASE),
    re.compile(r"youtu\.be/([A-Za-z0-9_-]+)", re.IGNORECASE),
    re.compile(r"^([A-Za-z0-9_-]{11})$"),
)


def extract(value: Any) -> Optional[VideoReference]:
    """Normalize a YouTube URL (or bare id) into a ``VideoReference``.

    Returns None for non-strings, blank input, unknown URL shapes and ids that
    are not exactly 11 characters of ``[A-Za-z0-9_-]``.
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    for pattern in _PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        candidate = match.group(1)
        if VIDEO_ID_RE.match(candidate):
            return VideoReference(candidate)
    return None


def extract_id(value: Any) -> Optional[str]:
    ref = extract(value)
    return ref.id if ref is not None else None
