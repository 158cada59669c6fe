# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Live per-bot fetches: does the server answer AI crawlers like it answers browsers?

One parameterized check, instantiated per bot classification tag. Bots are
probed one at a time in catalog order with a paced pause between probes.

Two modes:
- baseline: the desktop browser body exists; a bot is accessible when it
  gets HTTP 200, at least ``min_html_size`` chars, and a body within
  ``size_tolerance`` of the browser body
- bot-only: no browser body; HTTP 200 and ``min_html_size`` suffice
"""

from __future__ import annotations

import functools
import logging
from dataclasses import asdict, dataclass

import httpx

from aivis import CheckResult, PageSnapshot
from aivis.bots import BotIdentity, is_content_similar
from aivis.checks.base import CheckContext, PerformFn, round_half_up, scaled
from aivis.errors import ConfigError

logger = logging.getLogger(__name__)

PASS_RATIO = 0.7
BOT_ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml"


@dataclass(frozen=True, slots=True)
class BotProbe:
    """Outcome of one bot fetch. ``status == 0`` means the request itself failed."""

    bot: str
    accessible: bool
    status: int
    size: int


async def probe_bot(
    ctx: CheckContext, url: str, bot: BotIdentity, baseline_size: int | None
) -> BotProbe:
    try:
        resp = await ctx.fetcher.fetch(
            url,
            user_agent=bot.user_agent,
            headers={"Accept": BOT_ACCEPT_HEADER},
            max_retries=ctx.config.max_retries,
            context=f"bot {bot.name}",
        )
    except httpx.HTTPError as e:
        logger.debug("bot %s request failed: %s", bot.name, e)
        return BotProbe(bot=bot.name, accessible=False, status=0, size=0)

    size = len(resp.text)
    accessible = resp.status == 200 and size >= ctx.config.min_html_size
    if accessible and baseline_size is not None:
        accessible = is_content_similar(baseline_size, size, ctx.config.size_tolerance)
    logger.debug("bot %s: HTTP %d, %d chars, accessible=%s", bot.name, resp.status, size, accessible)
    return BotProbe(bot=bot.name, accessible=accessible, status=resp.status, size=size)


async def check_bot_access(
    ctx: CheckContext, url: str, snapshot: PageSnapshot, max_score: float, *, tag: str
) -> CheckResult:
    bots = ctx.catalog.with_tag(tag)
    if not bots:
        raise ConfigError(f"No bots found for bot type filter: {tag}")

    baseline_size = len(snapshot.desktop_html) if snapshot.desktop_html else None
    if baseline_size is None:
        logger.debug("no browser baseline, running bot-only accessibility test")

    pacer = ctx.pacer(ctx.config.bot_delay)
    probes: list[BotProbe] = []
    for i, bot in enumerate(bots):
        if i > 0:
            await pacer.pause()
        probes.append(await probe_bot(ctx, url, bot, baseline_size))

    blocked = [p.bot for p in probes if not p.accessible]
    visibility = ctx.catalog.product_visibility(frozenset(blocked), bots)
    score = scaled(visibility.visible_fraction, max_score)

    mode_note = "" if baseline_size is not None else " (bot-only testing)"
    n = visibility.total
    details = visibility.summary(
        all_visible=f"Visible to all {n} AI products{mode_note}",
        none_visible=f"Hidden from all {n} AI products{mode_note}",
        partial_prefix=mode_note,
    )

    return CheckResult(
        score=score,
        max_score=max_score,
        passed=score >= round_half_up(max_score * PASS_RATIO),
        details=details,
        metadata={
            "baseline_size": baseline_size,
            "results": [asdict(p) for p in probes],
            "blocked_bots": blocked,
            "visible_products": list(visibility.visible),
            "hidden_products": list(visibility.hidden),
            "total_products": n,
            "visible_count": len(visibility.visible),
            "total_bots": len(bots),
            "tag": tag,
        },
    )


def bot_access_check(tag: str) -> PerformFn:
    """``perform`` function testing the bots carrying *tag*."""
    return functools.partial(check_bot_access, tag=tag)
