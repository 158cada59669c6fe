# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Client-side rendering detection without executing JavaScript.

Crawlers used by AI products read the server HTML only. The score starts
at max and loses a fixed fraction of it per CSR signature:

  empty root container            50%
  visible text < 500 chars        30%   (< 2000 chars: 10%)
  no semantic tag                 20%
  script bytes > content bytes    10%
"""

from __future__ import annotations

import re

from aivis import CheckResult, PageSnapshot
from aivis.checks.base import CheckContext, round1

PASS_RATIO = 0.8

PENALTY_EMPTY_ROOT = 0.50
PENALTY_MINIMAL_TEXT = 0.30
PENALTY_MEDIUM_TEXT = 0.10
PENALTY_NO_SEMANTIC = 0.20
PENALTY_SCRIPT_HEAVY = 0.10

MINIMAL_TEXT_CHARS = 500
MEDIUM_TEXT_CHARS = 2000

_CSR_PATTERNS = (
    re.compile(r"<div\s+id=[\"'](?:root|app)[\"']\s*>\s*</div>", re.IGNORECASE),
    re.compile(r"<div\s+id=[\"']__next[\"']\s*>", re.IGNORECASE),
    re.compile(r"<div\s+id=[\"']__nuxt[\"']\s*>", re.IGNORECASE),
)

FRAMEWORK_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("React", re.compile(r"react|ReactDOM", re.IGNORECASE)),
    ("Vue", re.compile(r"vue\.js|createApp|Vue\.createApp", re.IGNORECASE)),
    ("Angular", re.compile(r"ng-app|angular|@angular", re.IGNORECASE)),
    ("Svelte", re.compile(r"svelte", re.IGNORECASE)),
)

_BODY_RE = re.compile(r"<body[^>]*>(.*)</body>", re.DOTALL | re.IGNORECASE)
_SCRIPT_RE = re.compile(r"<script.*?</script>", re.DOTALL | re.IGNORECASE)
_STYLE_RE = re.compile(r"<style.*?</style>", re.DOTALL | re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_NOSCRIPT_RE = re.compile(r"<noscript>.*?</noscript>", re.DOTALL | re.IGNORECASE)
_SEMANTIC_RE = re.compile(r"<(main|article|section|p|h[1-6])\b[^>]*>.*?</\1>", re.DOTALL | re.IGNORECASE)


def visible_text(fragment: str) -> str:
    """Text left after dropping scripts, styles and tags."""
    text = _SCRIPT_RE.sub("", fragment)
    text = _STYLE_RE.sub("", text)
    return _TAG_RE.sub("", text).strip()


def detect_frameworks(html: str) -> list[str]:
    return [name for name, pattern in FRAMEWORK_PATTERNS if pattern.search(html)]


async def check_render_dependency(
    ctx: CheckContext, url: str, snapshot: PageSnapshot, max_score: float
) -> CheckResult:
    html = snapshot.require("desktop_html")

    m = _BODY_RE.search(html)
    body = m.group(1) if m else html

    has_empty_root = any(p.search(html) for p in _CSR_PATTERNS)
    has_noscript = bool(_NOSCRIPT_RE.search(html))
    script_size = sum(len(s) for s in _SCRIPT_RE.findall(body))
    content_size = len(body) - script_size
    has_semantic = bool(_SEMANTIC_RE.search(body))
    text_length = len(visible_text(body))
    frameworks = detect_frameworks(html)

    score = max_score
    issues: list[str] = []
    if has_empty_root:
        score -= max_score * PENALTY_EMPTY_ROOT
        issues.append("Empty root div detected (CSR pattern)")
    if text_length < MINIMAL_TEXT_CHARS:
        score -= max_score * PENALTY_MINIMAL_TEXT
        issues.append("Minimal text content")
    elif text_length < MEDIUM_TEXT_CHARS:
        score -= max_score * PENALTY_MEDIUM_TEXT
    if not has_semantic:
        score -= max_score * PENALTY_NO_SEMANTIC
        issues.append("No semantic HTML tags")
    if script_size > content_size:
        score -= max_score * PENALTY_SCRIPT_HEAVY
        issues.append("High script-to-content ratio")
    score = round1(max(score, 0.0))

    threshold = max_score * PASS_RATIO
    if score >= threshold:
        details = f"Content accessible without JavaScript ({text_length} chars)"
    elif score == 0:
        details = "Content requires JavaScript - AI bots cannot read it\n"
        if frameworks:
            details += f"   Detected: {', '.join(frameworks)}\n"
        details += "   Solution: Implement Server-Side Rendering (SSR)"
    else:
        details = f"Hybrid rendering detected (score: {score:g}/{max_score:g})\n   Issues: {', '.join(issues)}"
        if frameworks:
            details += f"\n   Frameworks: {', '.join(frameworks)}"

    return CheckResult(
        score=score,
        max_score=max_score,
        passed=score >= threshold,
        details=details,
        metadata={
            "text_length": text_length,
            "content_size": content_size,
            "script_size": script_size,
            "has_empty_root_div": has_empty_root,
            "has_semantic_tags": has_semantic,
            "has_noscript_warning": has_noscript,
            "detected_frameworks": frameworks,
            "issues": issues,
        },
    )
