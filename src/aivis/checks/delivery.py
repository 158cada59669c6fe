# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""How the page is delivered: response latency and the mobile variant."""

from __future__ import annotations

import re

from aivis import CheckResult, PageSnapshot
from aivis.bots import is_content_similar
from aivis.checks.base import CheckContext
from aivis.errors import MissingSnapshotDataError

SPEED_PASS_RATIO = 0.8
MOBILE_PASS_RATIO = 0.8

# (upper bound ms, band, label); slower than the last bound is band 1
_SPEED_BANDS: tuple[tuple[float, int, str], ...] = (
    (500, 5, "excellent"),
    (1000, 4, "good"),
    (2000, 3, "acceptable"),
    (3000, 2, "slow"),
)
_MAX_BAND = 5

# Mobile rubric weights, fractions of max score
WEIGHT_STATUS_OK = 0.30
WEIGHT_VALID_SIZE = 0.30
WEIGHT_VIEWPORT = 0.20
WEIGHT_SIMILAR = 0.20

_VIEWPORT_RE = re.compile(r"<meta\s+name=[\"']viewport[\"']", re.IGNORECASE)


def speed_band(ms: float) -> tuple[int, str]:
    for bound, band, label in _SPEED_BANDS:
        if ms < bound:
            return band, label
    return 1, "very slow"


async def check_response_speed(
    ctx: CheckContext, url: str, snapshot: PageSnapshot, max_score: float
) -> CheckResult:
    timings = {"Desktop": snapshot.desktop_response_ms, "Mobile": snapshot.mobile_response_ms}
    if all(ms is None for ms in timings.values()):
        raise MissingSnapshotDataError("Response time data is required for speed check")

    per_device = max_score / 2
    score = 0.0
    parts: list[str] = []
    metadata: dict[str, object] = {}
    for device, ms in timings.items():
        if ms is None:
            continue
        band, label = speed_band(ms)
        score += band / _MAX_BAND * per_device
        parts.append(f"{device}: {ms:.0f}ms ({label})")
        metadata[f"{device.lower()}_ms"] = ms
        metadata[f"{device.lower()}_label"] = label

    return CheckResult(
        score=score,
        max_score=max_score,
        passed=score >= max_score * SPEED_PASS_RATIO,
        details=", ".join(parts),
        metadata=metadata,
    )


async def check_mobile_version(
    ctx: CheckContext, url: str, snapshot: PageSnapshot, max_score: float
) -> CheckResult:
    if not snapshot.desktop_html or snapshot.desktop_status is None:
        raise MissingSnapshotDataError("Desktop HTML is required for mobile compatibility check")

    mobile_html = snapshot.mobile_html
    mobile_status = snapshot.mobile_status
    if not mobile_html or mobile_status is None:
        return CheckResult(
            score=0,
            max_score=max_score,
            passed=False,
            details="Mobile version not accessible",
            metadata={"mobile_available": False},
        )

    score = 0.0
    issues: list[str] = []
    if mobile_status == 200:
        score += max_score * WEIGHT_STATUS_OK
    else:
        issues.append(f"Mobile HTTP {mobile_status}")
    if len(mobile_html) >= ctx.config.min_html_size:
        score += max_score * WEIGHT_VALID_SIZE
    else:
        issues.append("Mobile content too small")

    has_viewport = bool(_VIEWPORT_RE.search(mobile_html))
    if has_viewport:
        score += max_score * WEIGHT_VIEWPORT
    else:
        issues.append("Missing viewport meta tag")

    # A size mismatch is common for dedicated mobile layouts; not reported as an issue
    similar = is_content_similar(len(snapshot.desktop_html), len(mobile_html), ctx.config.mobile_size_tolerance)
    if similar:
        score += max_score * WEIGHT_SIMILAR

    threshold = max_score * MOBILE_PASS_RATIO
    if score >= threshold:
        note = ""
        if snapshot.mobile_response_ms is not None and snapshot.desktop_response_ms is not None:
            diff = round(snapshot.mobile_response_ms - snapshot.desktop_response_ms)
            if diff:
                note = f" ({diff:+d}ms vs desktop)"
        details = f"Mobile version available and optimized{note}"
    elif score == 0:
        details = f"Mobile version unavailable or broken\n   Issues: {', '.join(issues)}"
    else:
        details = f"Mobile version available with issues\n   Issues: {', '.join(issues)}"

    return CheckResult(
        score=score,
        max_score=max_score,
        passed=score >= threshold,
        details=details,
        metadata={
            "mobile_available": True,
            "desktop_size": len(snapshot.desktop_html),
            "mobile_size": len(mobile_html),
            "mobile_status": mobile_status,
            "has_viewport_tag": has_viewport,
            "content_similar": similar,
        },
    )
