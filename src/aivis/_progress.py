# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Progress indicators for CLI output.

Uses ``rich`` for interactive terminals; silent when stderr is piped so
redirected reports stay clean.
"""

from __future__ import annotations

import contextlib
import sys
from collections.abc import Generator

from rich.console import Console

_console = Console(stderr=True)


@contextlib.contextmanager
def status_spinner(msg: str) -> Generator[None, None, None]:
    """Context manager showing a spinner with *msg* while active.

    Silent when stderr is not a TTY (piped output).
    """
    if not sys.stderr.isatty():
        yield
        return

    with _console.status(msg):
        yield


def print_step(msg: str) -> None:
    """Print a step message to stderr (only when interactive)."""
    if sys.stderr.isatty():
        _console.print(msg, highlight=False, markup=False)
