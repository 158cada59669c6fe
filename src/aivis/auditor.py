# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Audit orchestrator: one page snapshot, every check in order, one weighted total.

Execution is strictly sequential. Between checks (not before the first) the
auditor pauses ``check_delay`` plus jitter so the many third-party endpoints
involved never see a uniform request cadence. Cancellation is observed before
every check and inside every pause; a cancelled run raises instead of
returning a partial report.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlsplit

import httpx

from aivis import CheckResult, PageSnapshot
from aivis.checks import Check, CheckContext, default_checks
from aivis.checks.base import round_half_up
from aivis.checks.robots import robots_url_for
from aivis.checks.site_files import site_file_url
from aivis.errors import SiteUnreachableError
from aivis.http import FetchResponse
from aivis.link_classifier import LinkClassifier, default_classifier
from aivis.logging_config import audit_context

logger = logging.getLogger(__name__)

# (minimum percentage, grade), first match wins
GRADES: tuple[tuple[int, str], ...] = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))


def normalize_url(value: str) -> str:
    """Prefix ``https://`` when no scheme is given; reject values without a host."""
    candidate = (value or "").strip()
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    parts = urlsplit(candidate)
    if parts.scheme not in ("http", "https"):
        raise ValueError(f"unsupported URL scheme: {parts.scheme!r}")
    if not parts.hostname or ("." not in parts.hostname and parts.hostname != "localhost"):
        raise ValueError(f"invalid URL: {value!r}")
    return candidate


def grade_for(percentage: int) -> str:
    for minimum, grade in GRADES:
        if percentage >= minimum:
            return grade
    return "F"


@dataclass(frozen=True, slots=True)
class AuditReport:
    """Ordered check results plus the weighted aggregate over non-error results."""

    url: str
    results: tuple[CheckResult, ...]
    site_category: str = ""
    started_at: datetime | None = None
    duration_ms: float = 0.0
    snapshot: PageSnapshot | None = field(default=None, repr=False, compare=False)

    @property
    def scored(self) -> tuple[CheckResult, ...]:
        return tuple(r for r in self.results if not r.error)

    @property
    def total_score(self) -> float:
        return sum(r.score for r in self.scored if r.score is not None)

    @property
    def total_max_score(self) -> float:
        return sum(r.max_score for r in self.scored)

    @property
    def percentage(self) -> int:
        if not self.total_max_score:
            return 0
        return round_half_up(self.total_score / self.total_max_score * 100)

    @property
    def grade(self) -> str:
        return grade_for(self.percentage)

    @property
    def error_count(self) -> int:
        return len(self.results) - len(self.scored)

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "site_category": self.site_category,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "duration_ms": round(self.duration_ms),
            "total_score": round(self.total_score, 1),
            "total_max_score": self.total_max_score,
            "percentage": self.percentage,
            "grade": self.grade,
            "results": [r.to_dict() for r in self.results],
        }


class VisibilityAuditor:
    """Runs an ordered list of checks against one URL.

    Usage::

        async with HttpFetcher(config, cancel=token) as fetcher:
            auditor = VisibilityAuditor(CheckContext(fetcher, config, cancel=token))
            report = await auditor.run("example.com")
    """

    def __init__(
        self,
        ctx: CheckContext,
        checks: Sequence[Check] | None = None,
        *,
        classifier: LinkClassifier | None = None,
    ) -> None:
        self._ctx = ctx
        self._checks = tuple(default_checks() if checks is None else checks)
        self._classifier = classifier or default_classifier()

    @property
    def checks(self) -> tuple[Check, ...]:
        return self._checks

    async def _fetch_page(self, url: str, user_agent: str, label: str) -> FetchResponse | None:
        """The page as served to *user_agent*, or ``None`` when the fetch fails or is not 2xx."""
        try:
            resp = await self._ctx.fetcher.fetch(
                url,
                user_agent=user_agent,
                headers=self._ctx.config.browser_headers,
                context=f"{label} page",
            )
        except httpx.HTTPError as e:
            logger.warning("%s fetch failed for %s: %s", label, url, e)
            return None
        if not resp.ok:
            logger.warning("%s fetch failed for %s: HTTP %d", label, url, resp.status)
            return None
        return resp

    async def _prefetch(self, url: str, label: str) -> FetchResponse | None:
        try:
            return await self._ctx.fetcher.fetch(url, max_retries=1, context=label)
        except httpx.HTTPError as e:
            logger.debug("%s prefetch failed: %s", label, e)
            return None

    async def fetch_snapshot(self, url: str) -> PageSnapshot:
        """Fetch desktop and mobile pages plus robots.txt and sitemap.xml."""
        config = self._ctx.config
        desktop = await self._fetch_page(url, config.desktop_user_agent, "desktop")
        desktop_at = datetime.now(UTC)
        if desktop is not None:
            await self._ctx.pacer(config.check_delay).pause()
        mobile = await self._fetch_page(url, config.mobile_user_agent, "mobile")
        mobile_at = datetime.now(UTC)

        if desktop is None and mobile is None:
            raise SiteUnreachableError(f"Could not fetch {url} (desktop and mobile requests both failed)")

        robots = await self._prefetch(robots_url_for(url), "robots.txt")
        sitemap = await self._prefetch(site_file_url(url, "sitemap.xml"), "sitemap.xml")

        return PageSnapshot(
            desktop_html=desktop.text if desktop else None,
            mobile_html=mobile.text if mobile else None,
            desktop_headers=desktop.headers if desktop else None,
            mobile_headers=mobile.headers if mobile else None,
            desktop_response_ms=desktop.elapsed_ms if desktop else None,
            mobile_response_ms=mobile.elapsed_ms if mobile else None,
            desktop_status=desktop.status if desktop else None,
            mobile_status=mobile.status if mobile else None,
            desktop_fetched_at=desktop_at if desktop else None,
            mobile_fetched_at=mobile_at if mobile else None,
            robots_txt=robots.text if robots and robots.ok else None,
            robots_status=robots.status if robots else None,
            sitemap_xml=sitemap.text if sitemap and sitemap.ok else None,
            sitemap_status=sitemap.status if sitemap else None,
        )

    async def run(
        self,
        url: str,
        *,
        snapshot: PageSnapshot | None = None,
        on_result: Callable[[CheckResult], None] | None = None,
    ) -> AuditReport:
        """Audit *url*; *on_result* is called after each check for streaming output."""
        url = normalize_url(url)
        with audit_context(url):
            started_at = datetime.now(UTC)
            start = time.perf_counter()
            if snapshot is None:
                snapshot = await self.fetch_snapshot(url)
            elif not snapshot.reachable:
                raise SiteUnreachableError(f"Could not fetch {url}")

            pacer = self._ctx.pacer(self._ctx.config.check_delay)
            results: list[CheckResult] = []
            for i, check in enumerate(self._checks):
                self._ctx.cancel.raise_if_cancelled()
                if i > 0:
                    await pacer.pause()
                logger.debug("running check %r", check.name)
                result = await check.execute(self._ctx, url, snapshot)
                results.append(result)
                if on_result is not None:
                    on_result(result)

            return AuditReport(
                url=url,
                results=tuple(results),
                site_category=self._classifier.classify(url),
                started_at=started_at,
                duration_ms=(time.perf_counter() - start) * 1000,
                snapshot=snapshot,
            )
