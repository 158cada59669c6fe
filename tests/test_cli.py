# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the aivis CLI: argument handling, output and exit codes."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from aivis import CheckResult, cli
from aivis.auditor import AuditReport
from aivis.checks import default_checks
from aivis.errors import AuditCancelledError, SiteUnreachableError

REPORT = AuditReport(
    url="https://example.com",
    results=(
        CheckResult(score=15, max_score=15, passed=True, details="Present", name="Server: check /robots.txt"),
        CheckResult(score=0, max_score=5, passed=False, details="None", name="Check /llms.txt"),
    ),
)


@pytest.fixture(autouse=True)
def _reset_logging():
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    structlog.reset_defaults()


@pytest.fixture
def fake_audit(monkeypatch):
    """Replace the network audit; records its arguments and returns REPORT (or raises)."""
    calls: dict = {}

    def install(outcome=REPORT):
        async def _run_audit(url, config, checks, *, stream):
            calls.update(url=url, config=config, checks=checks, stream=stream)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome

        monkeypatch.setattr(cli, "_run_audit", _run_audit)
        return calls

    return install


# ── check ────────────────────────────────────────────────────────────


class TestCheckCommand:
    def test_text_output_streams_summary(self, fake_audit, capsys):
        calls = fake_audit()
        cli.main(["check", "example.com"])
        out = capsys.readouterr().out
        assert out.startswith("AI visibility audit for https://example.com")
        assert "Total: 15/20 (75%, grade C)" in out
        assert calls["stream"] is True
        assert calls["url"] == "https://example.com"
        assert len(calls["checks"]) == len(default_checks())

    def test_json_to_file(self, fake_audit, tmp_path, capsys):
        fake_audit()
        target = tmp_path / "reports" / "audit.json"
        cli.main(["check", "example.com", "--format", "json", "-o", str(target)])
        data = json.loads(target.read_text(encoding="utf-8"))
        assert data["percentage"] == 75
        assert data["results"][0]["name"] == "Server: check /robots.txt"
        assert capsys.readouterr().out == ""

    def test_json_to_stdout(self, fake_audit, capsys):
        calls = fake_audit()
        cli.main(["check", "example.com", "--format", "json"])
        assert json.loads(capsys.readouterr().out)["grade"] == "C"
        assert calls["stream"] is False

    def test_fast_and_search_engines(self, fake_audit):
        calls = fake_audit()
        cli.main(["check", "example.com", "--fast", "--search-engines"])
        assert calls["config"].check_delay == 0
        assert calls["config"].bot_delay == 0
        assert len(calls["checks"]) == len(default_checks(include_search_engines=True))

    def test_only_filters_checks(self, fake_audit):
        calls = fake_audit()
        cli.main(["check", "example.com", "--only", "robots", "LLMS"])
        assert [c.name for c in calls["checks"]] == [
            "Server: check /robots.txt",
            "Server: X-Robots-Tag HTTP Header Check",
            "Check /llms.txt",
        ]

    def test_only_without_match(self, fake_audit, capsys):
        fake_audit()
        with pytest.raises(SystemExit) as exc:
            cli.main(["check", "example.com", "--only", "nothing-like-this"])
        assert exc.value.code == 2
        assert "no check matches" in capsys.readouterr().err

    def test_invalid_url(self, capsys):
        with pytest.raises(SystemExit) as exc:
            cli.main(["check", "ftp://example.com"])
        assert exc.value.code == 2
        assert "unsupported URL scheme" in capsys.readouterr().err

    def test_cancelled_exits_130(self, fake_audit, capsys):
        fake_audit(AuditCancelledError())
        with pytest.raises(SystemExit) as exc:
            cli.main(["check", "example.com", "--format", "json"])
        assert exc.value.code == 130
        assert "Audit cancelled" in capsys.readouterr().err

    def test_unreachable_exits_1(self, fake_audit, capsys):
        fake_audit(SiteUnreachableError("Could not fetch https://example.com"))
        with pytest.raises(SystemExit) as exc:
            cli.main(["check", "example.com", "--format", "json"])
        assert exc.value.code == 1
        assert "Error: Could not fetch https://example.com" in capsys.readouterr().err

    def test_unexpected_error_exits_1(self, fake_audit, capsys):
        fake_audit(RuntimeError("kaput"))
        with pytest.raises(SystemExit) as exc:
            cli.main(["check", "example.com", "--format", "json"])
        assert exc.value.code == 1
        assert "Error: kaput" in capsys.readouterr().err

    def test_bad_env_config(self, monkeypatch, capsys):
        monkeypatch.setenv("AIVIS_MAX_RETRIES", "lots")
        with pytest.raises(SystemExit) as exc:
            cli.main(["check", "example.com"])
        assert exc.value.code == 2
        assert "AIVIS_MAX_RETRIES" in capsys.readouterr().err


# ── classify / bots ──────────────────────────────────────────────────


class TestClassifyCommand:
    def test_table(self, capsys):
        cli.main(["classify", "https://www.youtube.com/watch?v=1", "example.com"])
        out = capsys.readouterr().out
        assert "vid" in out and "Video" in out
        assert "oth" in out and "Other" in out

    def test_stats(self, capsys):
        cli.main(["classify", "youtube.com", "vimeo.com", "reddit.com", "--stats"])
        rows = capsys.readouterr().out.splitlines()
        assert rows[0].split() == ["code", "type", "count"]
        assert rows[2].split() == ["vid", "Video", "2"]


class TestBotsCommand:
    def test_lists_catalog(self, capsys):
        cli.main(["bots"])
        out = capsys.readouterr().out
        assert "GPTBot" in out
        assert "CCBot" in out

    def test_tag_filter(self, capsys):
        cli.main(["bots", "--tag", "AI_SEARCH_INDEX"])
        out = capsys.readouterr().out
        assert "OAI-SearchBot" in out
        assert "GPTBot" not in out

    def test_unknown_tag(self, capsys):
        with pytest.raises(SystemExit) as exc:
            cli.main(["bots", "--tag", "NOPE"])
        assert exc.value.code == 1


def test_command_required():
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 2


def test_select_checks_case_insensitive():
    selected = cli.select_checks(default_checks(), ["COMMON CRAWL"])
    assert [c.name for c in selected] == ["Dataset: Common Crawl Dataset"]
    checks = default_checks()
    assert cli.select_checks(checks, None) is checks
