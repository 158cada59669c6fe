# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Cooperative cancellation and polite pacing between outbound requests.

Standalone leaf module (stdlib only: asyncio, random, logging).

- ``CancelToken`` wraps an ``asyncio.Event``; it is passed explicitly to
  everything that waits, never stored in a global.
- ``Pacer.pause()`` sleeps ``base + uniform(-jitter, +jitter)`` (clamped to
  zero) and wakes early with ``AuditCancelledError`` when the token is set.
"""

from __future__ import annotations

import asyncio
import logging
import random

from aivis.errors import AuditCancelledError

logger = logging.getLogger(__name__)


class CancelToken:
    """One-shot cancellation signal shared by an audit run."""

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise AuditCancelledError()

    async def wait(self) -> None:
        await self._event.wait()


class Pacer:
    """Delay source for one pacing site (between checks, between bots, ...)."""

    __slots__ = ("_base", "_jitter", "_token", "_rng")

    def __init__(
        self,
        base: float,
        jitter: float,
        token: CancelToken,
        rng: random.Random | None = None,
    ) -> None:
        if base < 0 or jitter < 0:
            raise ValueError(f"base and jitter must be >= 0, got {base}, {jitter}")
        self._base = base
        self._jitter = jitter
        self._token = token
        self._rng = rng or random.Random()

    def next_delay(self) -> float:
        """Seconds for the next pause; never negative."""
        offset = self._rng.uniform(-self._jitter, self._jitter) if self._jitter else 0.0
        return max(0.0, self._base + offset)

    async def pause(self) -> None:
        """Sleep for ``next_delay()``; raise ``AuditCancelledError`` if cancelled first."""
        self._token.raise_if_cancelled()
        delay = self.next_delay()
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._token.wait(), timeout=delay)
        except TimeoutError:
            return
        logger.debug("pause interrupted by cancellation")
        raise AuditCancelledError()
