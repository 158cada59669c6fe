# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for aivis.checks.site_files — sitemap.xml and llms.txt."""

from __future__ import annotations

import httpx
import pytest
from conftest import PAGE_URL, make_context

from aivis import PageSnapshot
from aivis.checks.site_files import (
    check_llms_txt,
    check_sitemap,
    parse_sitemap,
    site_file_url,
    sitemaps_from_robots,
)
from aivis.errors import FetchError

URLSET = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
    "<url><loc>https://example.com/</loc></url>"
    "<url><loc>https://example.com/about</loc></url>"
    "</urlset>"
)
SITEMAP_INDEX = (
    '<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
    "<sitemap><loc>https://example.com/sitemap-posts.xml</loc></sitemap>"
    "</sitemapindex>"
)
EMPTY_URLSET = '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"></urlset>'


def _sitemap_snapshot(status: int, body: str | None = None, robots: str | None = None) -> PageSnapshot:
    return PageSnapshot(desktop_html="<html></html>", sitemap_status=status, sitemap_xml=body, robots_txt=robots)


# ── parsing ──────────────────────────────────────────────────────────


class TestParseSitemap:
    def test_urlset(self):
        info = parse_sitemap(URLSET)
        assert info.is_valid
        assert info.url_count == 2
        assert not info.is_index

    def test_index(self):
        info = parse_sitemap(SITEMAP_INDEX)
        assert info.is_valid
        assert info.is_index
        assert info.url_count == 1

    def test_wrong_root(self):
        info = parse_sitemap("<html><body></body></html>")
        assert not info.is_valid
        assert info.error == "Missing urlset or sitemapindex tag"

    def test_not_xml(self):
        info = parse_sitemap("this is not xml <")
        assert not info.is_valid
        assert info.error.startswith("Not valid XML")

    def test_entities_not_expanded(self):
        xml = (
            '<?xml version="1.0"?><!DOCTYPE urlset [<!ENTITY e SYSTEM "file:///etc/passwd">]>'
            "<urlset><url><loc>&e;</loc></url></urlset>"
        )
        info = parse_sitemap(xml)
        assert info.url_count == 0


def test_site_file_url():
    assert site_file_url("https://example.com/a/b?x=1", "/llms.txt") == "https://example.com/llms.txt"


def test_sitemaps_from_robots():
    robots = "User-agent: *\nDisallow:\nSitemap: https://example.com/sm.xml\n"
    assert sitemaps_from_robots(robots) == ["https://example.com/sm.xml"]
    assert sitemaps_from_robots(None) == []


# ── sitemap check ────────────────────────────────────────────────────


class TestSitemapCheck:
    @pytest.mark.asyncio
    async def test_valid(self):
        async with make_context() as ctx:
            result = await check_sitemap(ctx, PAGE_URL, _sitemap_snapshot(200, URLSET), 5)
        assert result.score == 5
        assert result.passed
        assert result.details == "Valid sitemap with 2 URLs"

    @pytest.mark.asyncio
    async def test_missing(self):
        async with make_context() as ctx:
            result = await check_sitemap(ctx, PAGE_URL, _sitemap_snapshot(404), 5)
        assert result.score == 0
        assert result.details == "No /sitemap.xml found"

    @pytest.mark.asyncio
    async def test_robots_declared_fallback(self):
        def handler(request):
            if request.url.path == "/sitemap_index.xml":
                return httpx.Response(200, text=SITEMAP_INDEX)
            return httpx.Response(404)

        robots = "User-agent: *\nAllow: /\nSitemap: https://example.com/sitemap_index.xml\n"
        async with make_context(handler) as ctx:
            result = await check_sitemap(ctx, PAGE_URL, _sitemap_snapshot(404, robots=robots), 5)
        assert result.score == 5
        assert result.details == "Valid sitemap index with 1 sitemaps"
        assert result.metadata["sitemap_url"] == "https://example.com/sitemap_index.xml"

    @pytest.mark.asyncio
    async def test_invalid_gets_partial_credit(self):
        async with make_context() as ctx:
            result = await check_sitemap(ctx, PAGE_URL, _sitemap_snapshot(200, "<html></html>"), 5)
        assert result.score == 2
        assert not result.passed
        assert result.details == "Sitemap exists but invalid: Missing urlset or sitemapindex tag"

    @pytest.mark.asyncio
    async def test_empty(self):
        async with make_context() as ctx:
            result = await check_sitemap(ctx, PAGE_URL, _sitemap_snapshot(200, EMPTY_URLSET), 5)
        assert result.score == 3
        assert result.details == "Valid sitemap but contains no URLs"

    @pytest.mark.asyncio
    async def test_forbidden_raises(self):
        async with make_context() as ctx:
            with pytest.raises(FetchError, match="HTTP 403"):
                await check_sitemap(ctx, PAGE_URL, _sitemap_snapshot(403), 5)

    @pytest.mark.asyncio
    async def test_fetches_when_not_prefetched(self):
        async with make_context(lambda r: httpx.Response(200, text=URLSET)) as ctx:
            result = await check_sitemap(ctx, PAGE_URL, PageSnapshot(desktop_html="<html></html>"), 5)
        assert result.metadata["url_count"] == 2


# ── llms.txt ─────────────────────────────────────────────────────────


class TestLlmsTxt:
    @pytest.mark.asyncio
    async def test_present(self):
        async with make_context(lambda r: httpx.Response(200, text="# Example\n> A site\n")) as ctx:
            result = await check_llms_txt(ctx, PAGE_URL, PageSnapshot(), 1)
        assert result.score == 1
        assert result.details == "Found /llms.txt (18 bytes)"
        assert result.metadata["lines"] == 2

    @pytest.mark.asyncio
    async def test_large_file_in_kb(self):
        async with make_context(lambda r: httpx.Response(200, text="a" * 2048)) as ctx:
            result = await check_llms_txt(ctx, PAGE_URL, PageSnapshot(), 1)
        assert result.details == "Found /llms.txt (2.0 KB)"

    @pytest.mark.asyncio
    async def test_missing(self):
        async with make_context() as ctx:
            result = await check_llms_txt(ctx, PAGE_URL, PageSnapshot(), 1)
        assert result.score == 0
        assert result.details == "No /llms.txt found (not critical)"

    @pytest.mark.asyncio
    async def test_empty(self):
        async with make_context(lambda r: httpx.Response(200, text="  \n")) as ctx:
            result = await check_llms_txt(ctx, PAGE_URL, PageSnapshot(), 1)
        assert result.score == 0
        assert result.details == "Found /llms.txt but it is empty"

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        async with make_context(lambda r: httpx.Response(500)) as ctx:
            with pytest.raises(FetchError, match="HTTP 500"):
                await check_llms_txt(ctx, PAGE_URL, PageSnapshot(), 1)
