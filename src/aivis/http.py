# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Async HTTP fetcher with bounded retry, shared by the snapshot and every network check.

Retry policy:
- 5xx responses and transport errors (timeouts, connection resets, DNS) are
  retried with linear backoff ``retry_delay * (attempt + 1)``
- 4xx and other responses are returned as-is; callers decide what they mean
- after the budget, the last 5xx response is returned or the last
  transport error raised
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

import httpx

from aivis.config import AuditConfig
from aivis.pacing import CancelToken, Pacer

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FetchResponse:
    """Fully-read HTTP response."""

    url: str
    status: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    text: str = ""
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.text)


class HttpFetcher:
    """Async context manager owning one ``httpx.AsyncClient``.

    Usage::

        async with HttpFetcher(config) as fetcher:
            resp = await fetcher.fetch("https://example.com/robots.txt")
    """

    def __init__(
        self,
        config: AuditConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        cancel: CancelToken | None = None,
    ) -> None:
        self._config = config or AuditConfig()
        self._transport = transport
        self._cancel = cancel
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> HttpFetcher:
        self._client = httpx.AsyncClient(
            transport=self._transport,
            timeout=self._config.request_timeout,
            follow_redirects=True,
            headers={"Connection": "keep-alive"},
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self,
        url: str,
        *,
        user_agent: str | None = None,
        headers: Mapping[str, str] | None = None,
        max_retries: int | None = None,
        context: str = "",
    ) -> FetchResponse:
        """GET *url* with retry. *context* only labels log lines."""
        if self._client is None:
            raise RuntimeError("HttpFetcher must be used as an async context manager")

        retries = self._config.max_retries if max_retries is None else max_retries
        request_headers = {"User-Agent": user_agent or self._config.desktop_user_agent}
        if headers:
            request_headers.update(headers)

        label = context or url
        for attempt in range(retries + 1):
            start = time.perf_counter()
            try:
                response = await self._client.get(url, headers=request_headers)
            except httpx.TransportError as e:
                if attempt >= retries:
                    raise
                logger.debug("%s: %s, retrying (%d/%d)", label, type(e).__name__, attempt + 1, retries)
                await self._backoff(attempt)
                continue

            result = FetchResponse(
                url=str(response.url),
                status=response.status_code,
                headers=response.headers,
                text=response.text,
                elapsed_ms=(time.perf_counter() - start) * 1000,
            )
            if result.status >= 500 and attempt < retries:
                logger.debug("%s: HTTP %d, retrying (%d/%d)", label, result.status, attempt + 1, retries)
                await self._backoff(attempt)
                continue
            return result

        raise AssertionError("unreachable")  # pragma: no cover

    async def _backoff(self, attempt: int) -> None:
        delay = self._config.retry_delay * (attempt + 1)
        if delay <= 0:
            return
        if self._cancel is None:
            await asyncio.sleep(delay)
        else:
            await Pacer(delay, 0.0, self._cancel).pause()
