# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page-level blocking directives: ``<meta name=... content=noindex>`` and ``X-Robots-Tag``."""

from __future__ import annotations

import functools
import re

from aivis import CheckResult, PageSnapshot
from aivis.bots import BotIdentity
from aivis.checks.base import CheckContext

BLOCKING_KEYWORDS = ("noindex", "noai", "noimageai", "nosnippet")
_BLOCKING_RE = re.compile(r"\b(" + "|".join(BLOCKING_KEYWORDS) + r")\b", re.IGNORECASE)

_META_TEMPLATE = (
    r"<meta\s+name=[\"']{name}[\"']\s+content=[\"'][^\"']*\b(?:"
    + "|".join(BLOCKING_KEYWORDS)
    + r")\b[^\"']*[\"']"
)


@functools.lru_cache(maxsize=128)
def meta_blocking_pattern(name: str) -> re.Pattern[str]:
    """Compiled blocking-meta regex for one ``name=`` value."""
    return re.compile(_META_TEMPLATE.format(name=re.escape(name)), re.IGNORECASE)


def _meta_rules(bots: tuple[BotIdentity, ...], max_score: float) -> list[tuple[str, re.Pattern[str], float]]:
    # (description, pattern, deduction); generic robots blocks everyone
    rules = [("robots noindex", meta_blocking_pattern("robots"), max_score)]
    per_bot = max_score / len(bots) if bots else 0.0
    rules.extend((f"{b.identifier} noindex", meta_blocking_pattern(b.identifier), per_bot) for b in bots)
    return rules


async def check_meta_tags(ctx: CheckContext, url: str, snapshot: PageSnapshot, max_score: float) -> CheckResult:
    html = snapshot.require("desktop_html")

    found: list[str] = []
    score = max_score
    for description, pattern, deduction in _meta_rules(ctx.catalog.bots, max_score):
        if pattern.search(html):
            found.append(description)
            score -= deduction
            if score <= 0:
                break
    score = max(score, 0)

    return CheckResult(
        score=score,
        max_score=max_score,
        passed=score == max_score,
        details=f"Found blocking tags: {', '.join(found)}" if found else "No blocking meta tags",
        metadata={"blocked_by": found},
    )


async def check_robots_header(ctx: CheckContext, url: str, snapshot: PageSnapshot, max_score: float) -> CheckResult:
    headers = snapshot.desktop_headers
    if headers is None:
        # Unverifiable counts as non-blocking
        return CheckResult(
            score=max_score,
            max_score=max_score,
            passed=True,
            details="Unable to check (headers not available)",
            metadata={"headers_available": False},
        )

    values = headers.get_list("x-robots-tag")
    if not values:
        return CheckResult(
            score=max_score,
            max_score=max_score,
            passed=True,
            details="No blocking X-Robots-Tag headers found (all good)",
            metadata={"x_robots_tag_present": False},
        )

    blocking = [
        directive
        for value in values
        for directive in (d.strip() for d in value.split(","))
        if _BLOCKING_RE.search(directive)
    ]
    return CheckResult(
        score=0 if blocking else max_score,
        max_score=max_score,
        passed=not blocking,
        details=(
            f"Found blocking: X-Robots-Tag: {', '.join(blocking)}" if blocking else "No blocking X-Robots-Tag directives"
        ),
        metadata={"x_robots_tag_present": True, "header_values": values, "blocking_directives": blocking},
    )
