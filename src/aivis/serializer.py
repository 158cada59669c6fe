# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Audit report serialization: terminal text and JSON.

Two output formats:
- Text: one line per check (icon, name, score or ``ERR``, details), then the total
- JSON: structured data; errored checks carry ``score: -1``
"""

from __future__ import annotations

import json

from aivis import CheckResult
from aivis.auditor import AuditReport
from aivis.link_classifier import default_classifier

ICON_PASSED = "✓"
ICON_FAILED = "❌"
ICON_ERROR = "⚠"


def format_score(result: CheckResult) -> str:
    if result.score is None:
        return f"ERR/{result.max_score:g}"
    return f"{round(result.score, 1):g}/{result.max_score:g}"


def format_result_line(result: CheckResult) -> str:
    """``<icon> <name>: <score> - <details>``; details may span several lines."""
    icon = ICON_ERROR if result.error else ICON_PASSED if result.passed else ICON_FAILED
    return f"{icon} {result.name}: {format_score(result)} - {result.details.rstrip()}"


def format_summary(report: AuditReport) -> str:
    lines = [
        f"Total: {round(report.total_score, 1):g}/{report.total_max_score:g} "
        f"({report.percentage}%, grade {report.grade})"
    ]
    if report.error_count:
        lines.append(f"{report.error_count} check(s) errored and were excluded from the total")
    if report.site_category:
        lines.append(f"Site category: {default_classifier().rule_name(report.site_category)}")
    return "\n".join(lines)


def to_text(report: AuditReport) -> str:
    """Full plain-text report."""
    lines = [f"AI visibility audit for {report.url}", ""]
    lines.extend(format_result_line(r) for r in report.results)
    lines.append("")
    lines.append(format_summary(report))
    return "\n".join(lines)


def to_json(report: AuditReport, indent: int = 2) -> str:
    """Serialize an AuditReport to a JSON string."""
    return json.dumps(report.to_dict(), indent=indent, ensure_ascii=False, default=str)
