# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""AI Visibility Audit: can AI agents and search engines see this page?

Runs a battery of independent heuristic checks against one fetched page
snapshot and reports a weighted visibility score:
- robots directives, X-Robots-Tag headers, blocking meta tags
- structured data, content structure, render dependency, response speed
- per-bot accessibility probes, search/crawl-dataset presence
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from aivis.errors import MissingSnapshotDataError

__all__ = ["CheckResult", "PageSnapshot"]


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Outcome of a single visibility check.

    ``score`` is ``None`` exactly when the check errored; errored results are
    displayed but excluded from the aggregate.
    """

    score: float | None
    max_score: float
    passed: bool
    details: str
    error: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)
    name: str = ""

    def __post_init__(self) -> None:
        if self.error != (self.score is None):
            raise ValueError("score must be None iff error is set")

    @classmethod
    def failure(cls, max_score: float, message: str, *, name: str = "") -> CheckResult:
        return cls(
            score=None,
            max_score=max_score,
            passed=False,
            details=f"Error: {message}",
            error=True,
            name=name,
        )

    def named(self, name: str) -> CheckResult:
        return dataclasses.replace(self, name=name)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "score": -1 if self.score is None else self.score,
            "max_score": self.max_score,
            "passed": self.passed,
            "details": self.details,
        }
        if self.error:
            data["error"] = True
        if self.metadata:
            data["metadata"] = self.metadata
        return data


@dataclass(frozen=True, slots=True)
class PageSnapshot:
    """Pre-fetched page data shared read-only by every check."""

    desktop_html: str | None = None
    mobile_html: str | None = None
    desktop_headers: httpx.Headers | None = None
    mobile_headers: httpx.Headers | None = None
    desktop_response_ms: float | None = None
    mobile_response_ms: float | None = None
    desktop_status: int | None = None
    mobile_status: int | None = None
    desktop_fetched_at: datetime | None = None
    mobile_fetched_at: datetime | None = None
    robots_txt: str | None = None  # None = not fetched or not OK
    robots_status: int | None = None  # None = not pre-fetched
    sitemap_xml: str | None = None
    sitemap_status: int | None = None

    def require(self, field_name: str) -> Any:
        """Return *field_name* or raise if the snapshot lacks it."""
        value = getattr(self, field_name)
        if value is None or value == "":
            raise MissingSnapshotDataError(f"{field_name.replace('_', ' ')} is required for this check")
        return value

    @property
    def reachable(self) -> bool:
        return bool(self.desktop_html or self.mobile_html)
