# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Check contract: one weighted, named unit of the audit.

A ``Check`` is a plain record holding a coroutine function. ``execute()`` is
the only recovery boundary: anything ``perform`` raises becomes an error
result, except ``AuditCancelledError`` which stops the run.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum

from aivis import CheckResult, PageSnapshot
from aivis.bots import BotCatalog, default_catalog
from aivis.config import AuditConfig
from aivis.errors import AuditCancelledError
from aivis.http import HttpFetcher
from aivis.pacing import CancelToken, Pacer

logger = logging.getLogger(__name__)


class CheckKind(StrEnum):
    CONTENT = "content"  # pure function of the snapshot
    NETWORK = "network"  # issues its own requests


@dataclass(slots=True)
class CheckContext:
    """Collaborators handed to every check."""

    fetcher: HttpFetcher
    config: AuditConfig = field(default_factory=AuditConfig)
    catalog: BotCatalog = field(default_factory=default_catalog)
    cancel: CancelToken = field(default_factory=CancelToken)
    rng: random.Random = field(default_factory=random.Random)

    def pacer(self, base: float) -> Pacer:
        return Pacer(base, self.config.jitter, self.cancel, self.rng)


PerformFn = Callable[[CheckContext, str, PageSnapshot, float], Awaitable[CheckResult]]


@dataclass(frozen=True, slots=True)
class Check:
    """A named check with its weight and implementation."""

    name: str
    max_score: float
    kind: CheckKind
    perform: PerformFn

    def __post_init__(self) -> None:
        if self.max_score <= 0:
            raise ValueError(f"max_score must be > 0, got {self.max_score}")

    async def execute(self, ctx: CheckContext, url: str, snapshot: PageSnapshot) -> CheckResult:
        """Run ``perform``; convert any failure except cancellation into an error result."""
        try:
            result = await self.perform(ctx, url, snapshot, self.max_score)
        except AuditCancelledError:
            raise
        except Exception as e:
            logger.debug("check %r failed", self.name, exc_info=True)
            return CheckResult.failure(self.max_score, str(e) or type(e).__name__, name=self.name)
        return result.named(self.name)


# ---------------------------------------------------------------------------
# Scoring helpers
# ---------------------------------------------------------------------------


def round_half_up(value: float) -> int:
    """Round .5 upward (``round()`` rounds half to even)."""
    return math.floor(value + 0.5)


def round1(value: float) -> float:
    """One decimal place, half up."""
    return math.floor(value * 10 + 0.5) / 10


def scaled(fraction: float, max_score: float) -> int:
    """Integer score for a visible fraction of *max_score*."""
    return round_half_up(fraction * max_score)
