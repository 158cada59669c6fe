# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""JSON-LD structured data presence."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from aivis import CheckResult, PageSnapshot
from aivis.checks.base import CheckContext

logger = logging.getLogger(__name__)

_JSONLD_RE = re.compile(
    r'<script[^>]*type=["\']application/ld\+json["\'][^>]*>(.*?)</script>',
    re.DOTALL | re.IGNORECASE,
)

# Schema types AI answer engines favour
HIGH_VALUE_SCHEMAS: frozenset[str] = frozenset(
    {"FAQPage", "QAPage", "Article", "NewsArticle", "BlogPosting", "HowTo", "Recipe"}
)

MAX_SCORED_SCHEMAS = 3
HIGH_VALUE_BONUS = 1.1


def collect_schema_types(data: Any) -> list[str]:
    """Declared ``@type`` values in document order, descending into ``@graph`` and lists."""
    if isinstance(data, list):
        return [t for item in data for t in collect_schema_types(item)]
    if not isinstance(data, dict):
        return []
    types: list[str] = []
    declared = data.get("@type")
    if isinstance(declared, list):
        types.extend(str(t) for t in declared if t)
    elif declared:
        types.append(str(declared))
    if "@graph" in data:
        types.extend(collect_schema_types(data["@graph"]))
    return types


async def check_structured_data(
    ctx: CheckContext, url: str, snapshot: PageSnapshot, max_score: float
) -> CheckResult:
    html = snapshot.require("desktop_html")

    blocks = _JSONLD_RE.findall(html)
    if not blocks:
        return CheckResult(
            score=0,
            max_score=max_score,
            passed=False,
            details="No JSON-LD structured data found.",
            metadata={"schemas": [], "high_value_schemas": [], "total_blocks": 0, "valid_blocks": 0},
        )

    schemas: list[str] = []
    valid_blocks = 0
    for raw in blocks:
        try:
            data = json.loads(raw.strip())
        except (json.JSONDecodeError, ValueError):
            logger.debug("skipping unparsable JSON-LD block on %s", url)
            continue
        valid_blocks += 1
        schemas.extend(collect_schema_types(data))

    high_value = [s for s in schemas if s in HIGH_VALUE_SCHEMAS]
    score = min(len(schemas), MAX_SCORED_SCHEMAS) / MAX_SCORED_SCHEMAS * max_score
    if high_value:
        score = min(score * HIGH_VALUE_BONUS, max_score)

    if schemas:
        shown = f"{len(schemas)}/{MAX_SCORED_SCHEMAS}" if len(schemas) < MAX_SCORED_SCHEMAS else str(len(schemas))
        details = f"Found {shown} schemas: {', '.join(schemas)}"
        if high_value:
            details += f" (includes high-value schemas: {', '.join(high_value)})"
    else:
        details = f"Found {len(blocks)} JSON-LD blocks but invalid"

    return CheckResult(
        score=score,
        max_score=max_score,
        passed=score == max_score,
        details=details,
        metadata={
            "schemas": schemas,
            "high_value_schemas": high_value,
            "total_blocks": len(blocks),
            "valid_blocks": valid_blocks,
        },
    )
