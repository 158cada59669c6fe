# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""aivis CLI: check, classify, bots commands.

Usage:
    aivis check URL [--format text|json] [--output FILE] [--search-engines] [--only NAME ...] [--fast]
    aivis classify DOMAIN_OR_URL ... [--stats]
    aivis bots [--tag TAG]
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path

from tabulate import tabulate

from aivis import logging_config
from aivis._progress import print_step, status_spinner
from aivis.auditor import AuditReport, VisibilityAuditor, normalize_url
from aivis.bots import default_catalog
from aivis.checks import Check, CheckContext, default_checks
from aivis.config import AuditConfig
from aivis.errors import AivisError, AuditCancelledError, SiteUnreachableError
from aivis.http import HttpFetcher
from aivis.link_classifier import default_classifier
from aivis.pacing import CancelToken
from aivis.serializer import format_result_line, format_summary, to_json, to_text

logger = logging.getLogger(__name__)

EXIT_CANCELLED = 130


def _validate_output_path(path_str: str | None) -> Path | None:
    """Return the output file path, creating its parent directory."""
    if not path_str:
        return None
    p = Path(path_str)
    p.parent.mkdir(parents=True, exist_ok=True)
    return p


def select_checks(checks: list[Check], only: list[str] | None) -> list[Check]:
    """Keep checks whose name contains any of *only* (case-insensitive)."""
    if not only:
        return checks
    needles = [n.lower() for n in only]
    return [c for c in checks if any(n in c.name.lower() for n in needles)]


async def _run_audit(
    url: str,
    config: AuditConfig,
    checks: list[Check],
    *,
    stream: bool,
) -> AuditReport:
    token = CancelToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        handler_installed = False  # Windows event loops

    def _print_result(result) -> None:
        print(format_result_line(result), flush=True)

    try:
        async with HttpFetcher(config, cancel=token) as fetcher:
            auditor = VisibilityAuditor(CheckContext(fetcher=fetcher, config=config, cancel=token), checks)
            with status_spinner(f"Fetching {url} ..."):
                snapshot = await auditor.fetch_snapshot(url)
            print_step(f"Running {len(checks)} checks against {url}")
            return await auditor.run(url, snapshot=snapshot, on_result=_print_result if stream else None)
    finally:
        if handler_installed:
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(signal.SIGINT)


def cmd_check(args: argparse.Namespace) -> None:
    """Run the visibility audit for one URL."""
    output_path = _validate_output_path(args.output)

    try:
        url = normalize_url(args.url)
        config = AuditConfig.from_env()
    except (ValueError, AivisError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    if args.fast:
        config = config.without_pacing()

    checks = select_checks(default_checks(include_search_engines=args.search_engines), args.only)
    if not checks:
        print(f"Error: no check matches {', '.join(args.only)}", file=sys.stderr)
        sys.exit(2)

    stream = args.format == "text" and output_path is None
    if stream:
        print(f"AI visibility audit for {url}\n", flush=True)

    try:
        report = asyncio.run(_run_audit(url, config, checks, stream=stream))
    except AuditCancelledError:
        print("\nAudit cancelled", file=sys.stderr)
        sys.exit(EXIT_CANCELLED)
    except SiteUnreachableError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if stream:
        print(f"\n{format_summary(report)}")
        return

    rendered = to_json(report) if args.format == "json" else to_text(report)
    if output_path is not None:
        output_path.write_text(rendered + "\n", encoding="utf-8")
        print(f"Saved report to {output_path}", file=sys.stderr)
    else:
        print(rendered)


def cmd_classify(args: argparse.Namespace) -> None:
    """Classify domains/URLs into link types."""
    classifier = default_classifier()
    if args.stats:
        stats = classifier.classification_stats(args.values)
        rows = [[code, classifier.rule_name(code), n] for code, n in stats.most_common()]
        print(tabulate(rows, headers=["code", "type", "count"], tablefmt="simple"))
        return
    rows = [[value, code, classifier.rule_name(code)] for value, code in classifier.classify_many(args.values).items()]
    print(tabulate(rows, headers=["input", "code", "type"], tablefmt="simple"))


def cmd_bots(args: argparse.Namespace) -> None:
    """List known AI bot identities."""
    catalog = default_catalog()
    bots = catalog.with_tag(args.tag) if args.tag else catalog.bots
    if not bots:
        print(f"No bots tagged {args.tag}", file=sys.stderr)
        sys.exit(1)
    rows = [
        [b.name, b.identifier, ", ".join(b.tags) or "-", ", ".join(b.related_products)]
        for b in bots
    ]
    print(tabulate(rows, headers=["bot", "robots.txt token", "tags", "AI products"], tablefmt="simple"))


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level for stderr diagnostics (default: WARNING)",
    )
    common.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    common.add_argument("-v", "--verbose", action="store_true", help="Shortcut for --log-level DEBUG")

    parser = argparse.ArgumentParser(description="AI visibility audit", prog="aivis")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_check = subparsers.add_parser(
        "check",
        parents=[common],
        help="Audit a URL for AI bot and search visibility",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  %(prog)s example.com                           Stream results to the terminal
  %(prog)s example.com --format json -o out.json Save a JSON report
  %(prog)s example.com --only robots --fast      Single check, no pacing""",
    )
    p_check.add_argument("url", metavar="URL", help="Page to audit (https:// assumed)")
    p_check.add_argument("--format", choices=["text", "json"], default="text", help="Output format (default: text)")
    p_check.add_argument("-o", "--output", metavar="FILE", help="Write the report to FILE instead of stdout")
    p_check.add_argument(
        "--search-engines", action="store_true", help="Also query Google, Bing and Brave with site: searches"
    )
    p_check.add_argument("--only", nargs="+", metavar="NAME", help="Run only checks whose name contains NAME")
    p_check.add_argument("--fast", action="store_true", help="Disable pauses between requests")

    p_classify = subparsers.add_parser("classify", parents=[common], help="Classify domains or URLs by link type")
    p_classify.add_argument("values", nargs="+", metavar="DOMAIN_OR_URL")
    p_classify.add_argument("--stats", action="store_true", help="Print counts per link type")

    p_bots = subparsers.add_parser("bots", parents=[common], help="List known AI bot identities")
    p_bots.add_argument("--tag", help="Only bots with this classification tag")

    commands = {"check": cmd_check, "classify": cmd_classify, "bots": cmd_bots}

    args = parser.parse_args(argv)
    logging_config.configure(
        json_output=args.json_logs,
        level="DEBUG" if args.verbose else args.log_level,
    )

    try:
        commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(EXIT_CANCELLED)
    except SystemExit:
        raise
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
