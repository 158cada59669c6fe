# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""robots.txt directives per AI bot, reduced to AI product visibility.

Scoring uses a deliberately small model: a bot counts as blocked only by a
root (``/``) or empty ``Disallow`` in a group that applies to it, and any
later root ``Allow`` in such a group unblocks it again. Path-level rules for
the audited page are evaluated separately with Protego (RFC 9309
longest-match) and reported without affecting the score.

Fetch policy is fail-open: a missing (404) or unreachable robots.txt means
unrestricted.
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

import httpx
from protego import Protego

from aivis import CheckResult, PageSnapshot
from aivis.bots import BotIdentity
from aivis.checks.base import CheckContext, scaled

logger = logging.getLogger(__name__)

PASS_RATIO = 0.7


def robots_url_for(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}/robots.txt"


def is_bot_blocked(robots_txt: str, identifier: str) -> bool:
    """Whether *robots_txt* blocks the whole site for the bot named *identifier*."""
    wanted = identifier.lower()
    current_agent = "*"
    blocked = False

    for raw in robots_txt.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        value = value.strip()

        if key == "user-agent":
            current_agent = value
            continue
        if key not in ("disallow", "allow"):
            continue
        if current_agent != "*" and current_agent.lower() != wanted:
            continue
        if value in ("/", ""):
            blocked = key == "disallow"

    return blocked


def path_blocked_bots(robots_txt: str, url: str, bots: tuple[BotIdentity, ...]) -> list[str]:
    """Bots that RFC 9309 matching forbids from fetching *url* itself."""
    parser = Protego.parse(robots_txt)
    return [b.name for b in bots if not parser.can_fetch(url, b.identifier)]


def _unrestricted(max_score: float, details: str, **metadata: object) -> CheckResult:
    return CheckResult(score=max_score, max_score=max_score, passed=True, details=details, metadata=dict(metadata))


async def check_robots_txt(ctx: CheckContext, url: str, snapshot: PageSnapshot, max_score: float) -> CheckResult:
    total_products = len(ctx.catalog.products)

    if snapshot.robots_status is not None:
        status, body = snapshot.robots_status, snapshot.robots_txt or ""
    else:
        robots_url = robots_url_for(url)
        try:
            resp = await ctx.fetcher.fetch(robots_url, max_retries=ctx.config.max_retries, context="robots.txt")
        except httpx.HTTPError as e:
            logger.info("robots.txt unreachable at %s: %s", robots_url, e)
            return _unrestricted(
                max_score,
                f"robots.txt inaccessible - assuming unrestricted for all {total_products} AI products",
                fetch_error=str(e),
            )
        status, body = resp.status, resp.text

    if status == 404:
        return _unrestricted(max_score, f"No /robots.txt found - visible to all {total_products} AI products", status=404)
    if not 200 <= status < 300:
        return _unrestricted(
            max_score,
            f"robots.txt inaccessible (HTTP {status}) - assuming unrestricted for all {total_products} AI products",
            status=status,
        )

    bots = ctx.catalog.bots
    blocked = [b.name for b in bots if is_bot_blocked(body, b.identifier)]
    visibility = ctx.catalog.product_visibility(frozenset(blocked))
    score = scaled(visibility.visible_fraction, max_score)

    n = visibility.total
    if not visibility.hidden:
        details = f"Present, allowing indexing to all {n} AI products"
    elif not visibility.visible:
        details = f"Hidden from indexing to all {n} AI products"
    else:
        details = (
            f"{len(visibility.visible)}/{n} visible, allowing indexing to {', '.join(visibility.visible)}\n"
            f"   ❌ Hidden: {', '.join(visibility.hidden)}"
        )

    page_blocked = [name for name in path_blocked_bots(body, url, bots) if name not in blocked]
    if page_blocked:
        details += f"\n   ⚠ This page is disallowed for: {', '.join(page_blocked)}"

    return CheckResult(
        score=score,
        max_score=max_score,
        passed=score >= max_score * PASS_RATIO,
        details=details,
        metadata={
            "blocked_bots": blocked,
            "page_blocked_bots": page_blocked,
            "visible_products": list(visibility.visible),
            "hidden_products": list(visibility.hidden),
            "total_products": n,
            "visible_count": len(visibility.visible),
            "total_bots": len(bots),
        },
    )
