# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Detect HTTP 200 responses that are not real content pages.

Search engines and CDNs answer automated requests with CAPTCHA walls,
rate-limit notices, or tiny stub documents while still returning 200.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import httpx

MIN_CONTENT_SIZE = 500

# (pattern, label): label is what the details line reports
_ERROR_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(p, re.IGNORECASE), label)
    for p, label in (
        (r"too many requests", "too many requests"),
        (r"rate limit", "rate limit"),
        (r"try again later", "try again later"),
        (r"captcha", "captcha"),
        (r"recaptcha", "recaptcha"),
        (r"verify you(?:'re| are) (?:not )?a (?:robot|human)", "verify you are human"),
        (r"access denied", "access denied"),
        (r"403 forbidden", "403 forbidden"),
        (r"you don't have permission", "you don't have permission"),
        (r"\bblocked\b", "blocked"),
        (r"unusual traffic", "unusual traffic"),
        (r"automated requests", "automated requests"),
        (r"suspicious activity", "suspicious activity"),
    )
)

_NOINDEX_RE = re.compile(r"\bnoindex\b", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    is_valid: bool
    reason: str = ""
    size: int = 0


def validate_html_response(html: str, headers: httpx.Headers | None = None) -> ValidationResult:
    """Classify *html* as a usable content page or an error/stub page."""
    size = len(html or "")
    if size < MIN_CONTENT_SIZE:
        return ValidationResult(False, f"Content too small ({size} bytes, minimum {MIN_CONTENT_SIZE})", size)

    if headers is not None:
        content_type = headers.get("content-type", "")
        if content_type and "text/html" not in content_type.lower():
            return ValidationResult(False, f"Not HTML content (content-type: {content_type})", size)
        robots_tag = ", ".join(headers.get_list("x-robots-tag"))
        if robots_tag and _NOINDEX_RE.search(robots_tag):
            return ValidationResult(False, f"X-Robots-Tag forbids indexing ({robots_tag})", size)

    for pattern, label in _ERROR_PATTERNS:
        if pattern.search(html):
            return ValidationResult(False, f"Error page detected (matched: {label})", size)

    return ValidationResult(True, "", size)
