# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Check registry: the ordered, weighted list the auditor runs."""

from __future__ import annotations

from aivis.bots import AI_FOUNDATION_MODEL_TRAINING, AI_SEARCH_INDEX, AI_USER_INTERACTION
from aivis.checks.base import Check, CheckContext, CheckKind
from aivis.checks.bot_access import bot_access_check
from aivis.checks.content_structure import check_content_structure
from aivis.checks.delivery import check_mobile_version, check_response_speed
from aivis.checks.directives import check_meta_tags, check_robots_header
from aivis.checks.indexing import BING, BRAVE, GOOGLE, check_common_crawl, search_indexing_check
from aivis.checks.rendering import check_render_dependency
from aivis.checks.robots import check_robots_txt
from aivis.checks.site_files import check_llms_txt, check_sitemap
from aivis.checks.structured_data import check_structured_data

__all__ = ["Check", "CheckContext", "CheckKind", "default_checks", "search_engine_checks"]

_N = CheckKind.NETWORK
_C = CheckKind.CONTENT


def search_engine_checks() -> list[Check]:
    """``site:`` probes against public search engines (opt-in)."""
    return [
        Check("Google Indexing", 1, _N, search_indexing_check(GOOGLE)),
        Check("Search Index: Bing", 1, _N, search_indexing_check(BING)),
        Check("Search Index: Brave Search", 1, _N, search_indexing_check(BRAVE)),
    ]


def default_checks(include_search_engines: bool = False) -> list[Check]:
    """All checks in execution order with their weights."""
    checks = [
        Check("Server: check /robots.txt", 15, _N, check_robots_txt),
        Check("Server: X-Robots-Tag HTTP Header Check", 15, _C, check_robots_header),
        Check("Training Bots for AI Foundation Models", 12, _N, bot_access_check(AI_FOUNDATION_MODEL_TRAINING)),
        Check("Search Index Bots for AI Search", 10, _N, bot_access_check(AI_SEARCH_INDEX)),
        Check("User Interaction Bots for AI Assistants", 8, _N, bot_access_check(AI_USER_INTERACTION)),
        Check("Content Blocking Meta Tags Check", 8, _C, check_meta_tags),
        Check("JavaScript Dependency Check", 8, _C, check_render_dependency),
        Check("Content Structure for AI", 5, _C, check_content_structure),
        Check("Mobile Version Availability", 7, _C, check_mobile_version),
        Check("Server Response Speed", 7, _C, check_response_speed),
        Check("Server: check /sitemap.xml", 5, _N, check_sitemap),
        Check("Content: JSON-LD Structured Data Presence", 5, _C, check_structured_data),
        Check("Dataset: Common Crawl Dataset", 3, _N, check_common_crawl),
        Check("Check /llms.txt", 1, _N, check_llms_txt),
    ]
    if include_search_engines:
        checks.extend(search_engine_checks())
    return checks
