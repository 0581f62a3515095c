"""Helpers that keep identifiers and signed URLs out of log lines."""

from __future__ import annotations

import hashlib
from typing import Any
from urllib.parse import urlsplit


def safe_log_identifier(value: Any, *, prefix: str) -> str:
    """Return a deterministic non-reversible token for log correlation fields."""
    text = str(value or "").strip()
    if not text:
        return f"{prefix}-missing"

    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]
    return f"{prefix}-{digest}"


def safe_log_url(value: str | None) -> str:
    """Keep scheme and host of a media URL; the path and any signature are hashed."""
    if not value:
        return "url-missing"
    parts = urlsplit(value)
    host = parts.netloc or "nohost"
    return f"{parts.scheme or 'noscheme'}://{host}/{safe_log_identifier(parts.path, prefix='path')}"
