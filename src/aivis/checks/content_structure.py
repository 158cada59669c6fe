# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Content structure rubric for AI answer extraction.

Every signal owns an equal share of the check's max score. Three policies:

  count    – ``min(found / required, 1) * share``
  inverse  – absence earns the full share; each match removes
             ``share / cap`` down to zero
  ratio    – items satisfying a sub-pattern over all items of a kind;
             no items at all earns the full share
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from aivis import CheckResult, PageSnapshot
from aivis.checks.base import CheckContext, round1

PASS_RATIO = 0.7
WELL_STRUCTURED_RATIO = 0.8
RATIO_FOUND_THRESHOLD = 0.8


class Policy(StrEnum):
    COUNT = "count"
    INVERSE = "inverse"
    RATIO = "ratio"


@dataclass(frozen=True, slots=True)
class StructureSignal:
    """One rubric line."""

    id: str
    label: str
    policy: Policy
    patterns: tuple[re.Pattern[str], ...]
    required: int = 1  # count policy
    cap: int = 1  # inverse policy: matches for a full penalty
    sub_pattern: re.Pattern[str] | None = None  # ratio policy


@dataclass(frozen=True, slots=True)
class SignalScore:
    score: float
    found: bool
    message: str
    count: int = 0
    ratio: float | None = None


def _p(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def _meta_property(prop: str) -> re.Pattern[str]:
    return _p(r"<meta\s+[^>]*(?:property|name)=[\"']" + re.escape(prop) + r"[\"'][^>]*content=[\"'][^\"']+[\"']")


SIGNALS: tuple[StructureSignal, ...] = (
    StructureSignal("h1", "H1 tag", Policy.COUNT, (_p(r"<h1[\s>]"),)),
    StructureSignal("headings", "H2/H3 headings", Policy.COUNT, (_p(r"<h2[\s>]"), _p(r"<h3[\s>]")), required=5),
    StructureSignal(
        "meta_description",
        "meta description",
        Policy.COUNT,
        (_p(r"<meta\s+name=[\"']description[\"']\s+content=[\"'][^\"']+[\"']"),),
    ),
    StructureSignal("og_title", "og:title", Policy.COUNT, (_meta_property("og:title"),)),
    StructureSignal("og_description", "og:description", Policy.COUNT, (_meta_property("og:description"),)),
    StructureSignal("og_image", "og:image", Policy.COUNT, (_meta_property("og:image"),)),
    StructureSignal("canonical", "canonical URL", Policy.COUNT, (_p(r"<link\s+[^>]*rel=[\"']canonical[\"']"),)),
    StructureSignal("lang", "lang attribute", Policy.COUNT, (_p(r"<html\s+[^>]*\blang=[\"'][^\"']+[\"']"),)),
    StructureSignal("lists_tables", "lists/tables", Policy.COUNT, (_p(r"<(?:ul|ol|table)[\s>]"),)),
    StructureSignal(
        "img_alt",
        "image alt text",
        Policy.RATIO,
        (_p(r"<img\b[^>]*>"),),
        sub_pattern=_p(r"\balt=[\"'][^\"']+[\"']"),
    ),
    StructureSignal(
        "lazy_images",
        "lazy-loaded images",
        Policy.INVERSE,
        (_p(r"<img\b[^>]*(?:\bdata-(?:src|lazy-src|original)=|\bclass=[\"'][^\"']*\blazy(?:load)?\b)[^>]*>"),),
        cap=5,
    ),
)


def _count(signal: StructureSignal, html: str) -> int:
    return sum(len(p.findall(html)) for p in signal.patterns)


def score_signal(signal: StructureSignal, html: str, share: float) -> SignalScore:
    if signal.policy is Policy.COUNT:
        count = _count(signal, html)
        if count == 0:
            return SignalScore(0.0, False, signal.label, count)
        message = signal.label if signal.required == 1 else f"{count} {signal.label}"
        return SignalScore(min(count / signal.required, 1) * share, True, message, count)

    if signal.policy is Policy.INVERSE:
        count = _count(signal, html)
        if count == 0:
            return SignalScore(share, True, f"no {signal.label}", 0)
        penalty = share * min(count / signal.cap, 1)
        return SignalScore(share - penalty, False, f"{signal.label} ({count})", count)

    items = [m.group(0) for p in signal.patterns for m in p.finditer(html)]
    if not items:
        return SignalScore(share, True, "no images (N/A)", 0, 1.0)
    assert signal.sub_pattern is not None
    ratio = sum(1 for item in items if signal.sub_pattern.search(item)) / len(items)
    pct = round(ratio * 100)
    if ratio >= RATIO_FOUND_THRESHOLD:
        return SignalScore(ratio * share, True, f"{pct}% images with alt", len(items), ratio)
    return SignalScore(ratio * share, False, f"{signal.label} ({pct}% of images)", len(items), ratio)


async def check_content_structure(
    ctx: CheckContext, url: str, snapshot: PageSnapshot, max_score: float
) -> CheckResult:
    html = snapshot.require("desktop_html")

    share = max_score / len(SIGNALS)
    total = 0.0
    found: list[str] = []
    missing: list[str] = []
    metadata: dict[str, dict] = {}
    for signal in SIGNALS:
        result = score_signal(signal, html, share)
        total += result.score
        (found if result.found else missing).append(result.message)
        metadata[signal.id] = {
            "score": result.score,
            "found": result.found,
            "count": result.count,
            "ratio": result.ratio,
        }

    total = round1(total)
    if total >= max_score * WELL_STRUCTURED_RATIO:
        details = f"Well-structured for AI: {', '.join(found)}"
    elif total == 0:
        details = f"Poor structure for AI\n   Missing: {', '.join(missing)}"
    else:
        parts = []
        if found:
            parts.append(f"Has: {', '.join(found)}")
        if missing:
            parts.append(f"Missing: {', '.join(missing)}")
        details = "\n   ".join(parts)

    return CheckResult(
        score=total,
        max_score=max_score,
        passed=total >= max_score * PASS_RATIO,
        details=details,
        metadata=metadata,
    )
