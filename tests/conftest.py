# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import aivis  # noqa: F401
except ImportError:
    raise ImportError("aivis is not installed. Run: pip install -e '.[test]'") from None

import contextlib
import dataclasses
import random

import httpx
import pytest

from aivis import PageSnapshot
from aivis.bots import (
    AI_FOUNDATION_MODEL_TRAINING,
    AI_SEARCH_INDEX,
    BotCatalog,
    BotIdentity,
    default_catalog,
)
from aivis.checks import CheckContext
from aivis.config import AuditConfig
from aivis.http import HttpFetcher
from aivis.pacing import CancelToken, Pacer

PAGE_URL = "https://example.com/"

LOREM = (
    "Lorem ipsum dolor sit amet, consectetur adipiscing elit, sed do eiusmod tempor "
    "incididunt ut labore et dolore magna aliqua. "
)


def page_html(paragraphs: int = 30, head: str = "") -> str:
    """A plain server-rendered page; 30 paragraphs is ~4 KB of visible text."""
    body = "".join(f"<p>{LOREM}</p>" for _ in range(paragraphs))
    return f"<html><head><title>Example</title>{head}</head><body><main>{body}</main></body></html>"


def fast_config(**overrides) -> AuditConfig:
    """Default config with every pause and retry backoff disabled."""
    return dataclasses.replace(AuditConfig().without_pacing(), retry_delay=0.0, **overrides)


def not_found(request: httpx.Request) -> httpx.Response:
    return httpx.Response(404, text="Not Found")


def small_catalog() -> BotCatalog:
    """Two training bots feeding two products, plus one search bot with its own product."""
    return BotCatalog(
        bots=[
            BotIdentity(
                name="GPTBot",
                identifier="GPTBot",
                user_agent="GPTBot/1.1",
                tags=(AI_FOUNDATION_MODEL_TRAINING,),
                related_products=("ChatGPT",),
            ),
            BotIdentity(
                name="ClaudeBot",
                identifier="ClaudeBot",
                user_agent="ClaudeBot/1.0",
                tags=(AI_FOUNDATION_MODEL_TRAINING,),
                related_products=("Claude",),
            ),
            BotIdentity(
                name="PerplexityBot",
                identifier="PerplexityBot",
                user_agent="PerplexityBot/1.0",
                tags=(AI_SEARCH_INDEX,),
                related_products=("Perplexity",),
            ),
        ],
        products=["ChatGPT", "Claude", "Perplexity"],
    )


@contextlib.asynccontextmanager
async def make_context(handler=None, *, config=None, catalog=None, cancel=None):
    """CheckContext whose fetcher is served by an ``httpx.MockTransport`` handler."""
    cfg = config or fast_config()
    token = cancel or CancelToken()
    transport = httpx.MockTransport(handler or not_found)
    async with HttpFetcher(cfg, transport=transport, cancel=token) as fetcher:
        yield CheckContext(
            fetcher=fetcher,
            config=cfg,
            catalog=catalog or default_catalog(),
            cancel=token,
            rng=random.Random(0),
        )


@pytest.fixture
def snapshot() -> PageSnapshot:
    html = page_html()
    return PageSnapshot(
        desktop_html=html,
        mobile_html=html,
        desktop_headers=httpx.Headers({"content-type": "text/html"}),
        mobile_headers=httpx.Headers({"content-type": "text/html"}),
        desktop_response_ms=200.0,
        mobile_response_ms=250.0,
        desktop_status=200,
        mobile_status=200,
    )


@pytest.fixture
def pauses(monkeypatch) -> list[float]:
    """Record every ``Pacer.pause()`` delay instead of sleeping; cancellation still raises."""
    recorded: list[float] = []

    async def pause(self):
        self._token.raise_if_cancelled()
        recorded.append(self.next_delay())

    monkeypatch.setattr(Pacer, "pause", pause)
    return recorded
