# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Well-known site files: ``/sitemap.xml`` and ``/llms.txt``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlsplit

from lxml import etree
from protego import Protego

from aivis import CheckResult, PageSnapshot
from aivis.checks.base import CheckContext, round_half_up
from aivis.errors import FetchError

logger = logging.getLogger(__name__)

INVALID_SITEMAP_RATIO = 0.3
EMPTY_SITEMAP_RATIO = 0.5

_SITEMAP_ROOTS = ("urlset", "sitemapindex")


def site_file_url(url: str, path: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}/{path.lstrip('/')}"


# ---------------------------------------------------------------------------
# sitemap.xml
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SitemapInfo:
    is_valid: bool
    url_count: int = 0
    is_index: bool = False
    error: str = ""


def parse_sitemap(xml: str) -> SitemapInfo:
    """Validate sitemap structure with lxml and count ``<loc>`` entries."""
    parser = etree.XMLParser(resolve_entities=False, no_network=True, recover=False)
    try:
        root = etree.fromstring(xml.strip().encode("utf-8"), parser=parser)
    except etree.XMLSyntaxError as e:
        return SitemapInfo(is_valid=False, error=f"Not valid XML ({e})")
    if root is None:
        return SitemapInfo(is_valid=False, error="Not valid XML")

    tag = etree.QName(root).localname
    if tag not in _SITEMAP_ROOTS:
        return SitemapInfo(is_valid=False, error="Missing urlset or sitemapindex tag")
    locs = [el for el in root.iter("{*}loc") if (el.text or "").strip()]
    return SitemapInfo(is_valid=True, url_count=len(locs), is_index=tag == "sitemapindex")


def sitemaps_from_robots(robots_txt: str | None) -> list[str]:
    if not robots_txt:
        return []
    return list(Protego.parse(robots_txt).sitemaps)


async def _load_sitemap(ctx: CheckContext, url: str, snapshot: PageSnapshot) -> tuple[int, str, str]:
    """(status, body, sitemap url), preferring the pre-fetched copy."""
    sitemap_url = site_file_url(url, "sitemap.xml")
    if snapshot.sitemap_status is not None:
        status, body = snapshot.sitemap_status, snapshot.sitemap_xml or ""
    else:
        resp = await ctx.fetcher.fetch(sitemap_url, max_retries=ctx.config.max_retries, context="sitemap.xml")
        status, body = resp.status, resp.text

    if status == 404:
        for declared in sitemaps_from_robots(snapshot.robots_txt):
            if declared == sitemap_url:
                continue
            logger.debug("trying sitemap declared in robots.txt: %s", declared)
            resp = await ctx.fetcher.fetch(declared, max_retries=1, context="robots.txt sitemap")
            return resp.status, resp.text, declared
    return status, body, sitemap_url


async def check_sitemap(ctx: CheckContext, url: str, snapshot: PageSnapshot, max_score: float) -> CheckResult:
    status, body, sitemap_url = await _load_sitemap(ctx, url, snapshot)

    if status == 404:
        return CheckResult(
            score=0, max_score=max_score, passed=False, details="No /sitemap.xml found", metadata={"exists": False}
        )
    if not 200 <= status < 300:
        raise FetchError(f"Sitemap not accessible (HTTP {status})", url=sitemap_url, status=status)

    info = parse_sitemap(body)
    if not info.is_valid:
        return CheckResult(
            score=round_half_up(max_score * INVALID_SITEMAP_RATIO),
            max_score=max_score,
            passed=False,
            details=f"Sitemap exists but invalid: {info.error}",
            metadata={"exists": True, "valid": False, "error": info.error, "sitemap_url": sitemap_url},
        )

    kind, items = ("sitemap index", "sitemaps") if info.is_index else ("sitemap", "URLs")
    metadata = {
        "exists": True,
        "valid": True,
        "url_count": info.url_count,
        "is_sitemap_index": info.is_index,
        "sitemap_url": sitemap_url,
    }
    if info.url_count == 0:
        return CheckResult(
            score=round_half_up(max_score * EMPTY_SITEMAP_RATIO),
            max_score=max_score,
            passed=False,
            details=f"Valid {kind} but contains no {items}",
            metadata=metadata,
        )
    return CheckResult(
        score=max_score,
        max_score=max_score,
        passed=True,
        details=f"Valid {kind} with {info.url_count} {items}",
        metadata=metadata,
    )


# ---------------------------------------------------------------------------
# llms.txt
# ---------------------------------------------------------------------------


def _format_size(n: int) -> str:
    return f"{n} bytes" if n < 1024 else f"{n / 1024:.1f} KB"


async def check_llms_txt(ctx: CheckContext, url: str, snapshot: PageSnapshot, max_score: float) -> CheckResult:
    llms_url = site_file_url(url, "llms.txt")
    resp = await ctx.fetcher.fetch(llms_url, max_retries=ctx.config.max_retries, context="llms.txt")

    if resp.status == 404:
        return CheckResult(
            score=0,
            max_score=max_score,
            passed=False,
            details="No /llms.txt found (not critical)",
            metadata={"exists": False},
        )
    if not resp.ok:
        raise FetchError(f"llms.txt not accessible (HTTP {resp.status})", url=llms_url, status=resp.status)

    content = resp.text.strip()
    if not content:
        return CheckResult(
            score=0,
            max_score=max_score,
            passed=False,
            details="Found /llms.txt but it is empty",
            metadata={"exists": True, "size": 0},
        )
    size = len(content.encode("utf-8"))
    return CheckResult(
        score=max_score,
        max_score=max_score,
        passed=True,
        details=f"Found /llms.txt ({_format_size(size)})",
        metadata={"exists": True, "size": size, "lines": content.count("\n") + 1},
    )
