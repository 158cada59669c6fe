# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Presence of the audited site in external indexes.

- Search engines: a ``site:<domain>`` query per engine, parameterized by a
  ``SearchEngine`` record. Fail-closed: anything short of a clear result
  indicator scores 0.
- Common Crawl: the most recent crawl indexes are queried for the domain;
  any non-empty NDJSON body is a hit.
"""

from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass
from urllib.parse import quote, urlsplit

import httpx

from aivis import CheckResult, PageSnapshot
from aivis.checks.base import CheckContext, PerformFn
from aivis.errors import FetchError
from aivis.response_validator import validate_html_response

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Search engines
# ---------------------------------------------------------------------------

NO_SEARCH_RESULTS_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"No results found",
        r"couldn't find any results",
        r"didn't match any results",
        r"(?<![\d,.])\b0 results\b",
        r"Too few matches were found",
        r"No results found for",
        r"There are no results for",
    )
)

SEARCH_HEADERS = {"Accept": "text/html", "Accept-Language": "en-US,en;q=0.9"}


@dataclass(frozen=True, slots=True)
class SearchEngine:
    """Engine-specific part of the indexing check.

    ``success_patterns`` items are plain substrings (``str``) or compiled
    regexes; any match means the domain has results.
    """

    name: str
    base_url: str
    success_patterns: tuple[str | re.Pattern[str], ...]

    def search_url(self, domain: str) -> str:
        return f"{self.base_url}?q=site:{quote(domain, safe='')}"

    def has_results(self, html: str) -> bool:
        return any(
            (p in html) if isinstance(p, str) else bool(p.search(html))
            for p in self.success_patterns
        )


GOOGLE = SearchEngine(
    name="Google",
    base_url="https://www.google.com/search",
    success_patterns=("Search Results", "result-stats", re.compile(r"About [0-9,]+ results", re.IGNORECASE)),
)
BING = SearchEngine(
    name="Bing",
    base_url="https://www.bing.com/search",
    success_patterns=("b_algo", "b_results", re.compile(r"[0-9,]+ results", re.IGNORECASE)),
)
BRAVE = SearchEngine(
    name="Brave Search",
    base_url="https://search.brave.com/search",
    success_patterns=(
        "snippet",
        "result-header",
        re.compile(r"showing [0-9]+ results", re.IGNORECASE),
        re.compile(r"<article", re.IGNORECASE),
    ),
)
SEARCH_ENGINES: tuple[SearchEngine, ...] = (GOOGLE, BING, BRAVE)


async def query_search_engine(ctx: CheckContext, engine: SearchEngine, domain: str) -> tuple[bool, str]:
    """(indexed, reason) for one ``site:`` query."""
    try:
        resp = await ctx.fetcher.fetch(
            engine.search_url(domain),
            user_agent=ctx.config.desktop_user_agent,
            headers=SEARCH_HEADERS,
            max_retries=1,
            context=f"{engine.name} indexing: {domain}",
        )
    except httpx.HTTPError as e:
        return False, f"Error: {str(e) or type(e).__name__}"

    if not resp.ok:
        return False, f"HTTP {resp.status}"

    validation = validate_html_response(resp.text, resp.headers)
    if not validation.is_valid:
        return False, f"Invalid response: {validation.reason}"
    if any(p.search(resp.text) for p in NO_SEARCH_RESULTS_PATTERNS):
        return False, "No results found"
    if engine.has_results(resp.text):
        return True, "Indexed"
    return False, "Unable to determine (no clear result indicators)"


async def check_search_indexing(
    ctx: CheckContext, url: str, snapshot: PageSnapshot, max_score: float, *, engine: SearchEngine
) -> CheckResult:
    domain = urlsplit(url).hostname or ""
    indexed, details = await query_search_engine(ctx, engine, domain)
    logger.debug("%s indexing for %s: %s", engine.name, domain, details)
    return CheckResult(
        score=max_score if indexed else 0,
        max_score=max_score,
        passed=indexed,
        details=details,
        metadata={"search_engine": engine.name, "indexed": indexed},
    )


def search_indexing_check(engine: SearchEngine) -> PerformFn:
    return functools.partial(check_search_indexing, engine=engine)


# ---------------------------------------------------------------------------
# Common Crawl
# ---------------------------------------------------------------------------

COMMON_CRAWL_COLLECTIONS_URL = "https://index.commoncrawl.org/collinfo.json"


def common_crawl_query_url(index_id: str, domain: str) -> str:
    return f"https://index.commoncrawl.org/{index_id}-index?url={quote(domain, safe='')}&output=json"


async def recent_crawl_indexes(ctx: CheckContext, limit: int) -> list[str]:
    """Ids of the *limit* most recent crawls, newest first."""
    try:
        resp = await ctx.fetcher.fetch(COMMON_CRAWL_COLLECTIONS_URL, max_retries=2, context="Common Crawl index list")
        if not resp.ok:
            raise FetchError(f"HTTP {resp.status}", url=COMMON_CRAWL_COLLECTIONS_URL, status=resp.status)
        collections = resp.json()
    except (httpx.HTTPError, FetchError, ValueError) as e:
        raise FetchError(f"Failed to fetch index list from {COMMON_CRAWL_COLLECTIONS_URL}: {e}") from e
    if not isinstance(collections, list):
        raise FetchError("Unexpected Common Crawl index list format", url=COMMON_CRAWL_COLLECTIONS_URL)
    return [c["id"] for c in collections[:limit] if isinstance(c, dict) and c.get("id")]


async def domain_in_crawl(ctx: CheckContext, index_id: str, domain: str) -> bool:
    query_url = common_crawl_query_url(index_id, domain)
    try:
        resp = await ctx.fetcher.fetch(query_url, max_retries=1, context=f"Common Crawl {index_id}")
    except httpx.HTTPError as e:
        logger.warning("Common Crawl query %s failed: %s", query_url, e)
        return False
    return resp.ok and bool(resp.text.strip())


async def check_common_crawl(ctx: CheckContext, url: str, snapshot: PageSnapshot, max_score: float) -> CheckResult:
    try:
        indexes = await recent_crawl_indexes(ctx, ctx.config.crawl_indexes)
    except FetchError as e:
        raise FetchError(f"Common Crawl check failed: {e}") from e
    if not indexes:
        raise FetchError("Common Crawl check failed: No Common Crawl indexes available")

    domain = urlsplit(url).hostname or ""
    pacer = ctx.pacer(ctx.config.bot_delay)
    found: list[str] = []
    for i, index_id in enumerate(indexes):
        if i > 0:
            await pacer.pause()
        if await domain_in_crawl(ctx, index_id, domain):
            found.append(index_id)

    return CheckResult(
        score=max_score if found else 0,
        max_score=max_score,
        passed=bool(found),
        details=(
            f"Found in {len(found)} recent crawl(s): {', '.join(found)}"
            if found
            else f"Not found in {len(indexes)} recent crawls: {', '.join(indexes)}"
        ),
        metadata={"found_in_indexes": found, "checked_indexes": indexes, "total_checked": len(indexes)},
    )
