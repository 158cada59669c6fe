# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge for the aivis CLI and library.

Terminal runs get ``ConsoleRenderer``; ``--json-logs`` switches to one JSON
object per line. Everything goes to stderr so stdout only ever carries the
report. Leaf module with no aivis imports, safe to call first in main().
"""

from __future__ import annotations

import contextlib
import logging
import sys
from collections.abc import Iterator

import structlog

# Chatty transport loggers, held at WARNING unless the root level is DEBUG
NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _build_handler(json_output: bool, shared: list) -> logging.Handler:
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=shared,
        )
    )
    return handler


def configure(*, json_output: bool = False, level: str = "WARNING") -> None:
    """Route structlog and stdlib logging through one stderr handler.

    Args:
        json_output: True for JSON lines, False for human-readable console output.
        level: Root logger level. Unknown names fall back to WARNING so a
            normal audit prints nothing but the report.
    """
    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_level = getattr(logging, level.upper(), logging.WARNING)
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_build_handler(json_output, shared))
    root.setLevel(root_level)

    noisy_level = root_level if root_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)


@contextlib.contextmanager
def audit_context(url: str) -> Iterator[None]:
    """Tag every log line emitted inside the block with ``audit_url``."""
    with structlog.contextvars.bound_contextvars(audit_url=url):
        yield
