# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""aivis exception hierarchy.

All aivis-specific errors inherit from AivisError. Checks may raise freely;
the check contract converts anything except AuditCancelledError into an
error result.
"""

from __future__ import annotations


class AivisError(Exception):
    """Base exception for all aivis errors."""


class ConfigError(AivisError):
    """Invalid configuration value or malformed bundled data file."""


class MissingSnapshotDataError(AivisError):
    """A check needs a page snapshot field that was not captured."""


class FetchError(AivisError):
    """An HTTP fetch inside a check produced an unusable response."""

    def __init__(self, message: str, *, url: str = "", status: int = 0) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class SiteUnreachableError(AivisError):
    """Neither the desktop nor the mobile page could be fetched."""


class AuditCancelledError(AivisError):
    """The audit was interrupted; remaining checks must not run."""

    def __init__(self, message: str = "Operation cancelled") -> None:
        super().__init__(message)
