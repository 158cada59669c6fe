# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Audit configuration: pacing, similarity thresholds, HTTP budget, identities.

Immutable and validated on construction. ``AuditConfig.from_env()`` overlays
``AIVIS_*`` environment variables on the defaults.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field

from aivis.errors import ConfigError

DESKTOP_BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
MOBILE_BROWSER_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)

DEFAULT_BROWSER_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

# env var -> (field, parser)
_ENV_FIELDS: dict[str, tuple[str, type]] = {
    "AIVIS_CHECK_DELAY": ("check_delay", float),
    "AIVIS_BOT_DELAY": ("bot_delay", float),
    "AIVIS_JITTER": ("jitter", float),
    "AIVIS_SIZE_TOLERANCE": ("size_tolerance", float),
    "AIVIS_MIN_HTML_SIZE": ("min_html_size", int),
    "AIVIS_TIMEOUT": ("request_timeout", float),
    "AIVIS_MAX_RETRIES": ("max_retries", int),
    "AIVIS_RETRY_DELAY": ("retry_delay", float),
    "AIVIS_CRAWL_INDEXES": ("crawl_indexes", int),
    "AIVIS_DESKTOP_UA": ("desktop_user_agent", str),
    "AIVIS_MOBILE_UA": ("mobile_user_agent", str),
}


@dataclass(frozen=True, slots=True)
class AuditConfig:
    """Immutable configuration for one audit run. Durations in seconds."""

    check_delay: float = 1.0  # pause between checks
    bot_delay: float = 1.0  # pause between per-bot / per-index probes
    jitter: float = 0.05  # +/- random addition to every pause
    size_tolerance: float = 0.03  # |a-b| / avg(a, b) for bot-vs-browser bodies
    mobile_size_tolerance: float = 0.20
    min_html_size: int = 500  # smaller bodies are error pages
    request_timeout: float = 30.0
    max_retries: int = 2
    retry_delay: float = 1.0
    crawl_indexes: int = 3
    desktop_user_agent: str = DESKTOP_BROWSER_USER_AGENT
    mobile_user_agent: str = MOBILE_BROWSER_USER_AGENT
    browser_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_BROWSER_HEADERS))

    def __post_init__(self) -> None:
        for name in ("check_delay", "bot_delay", "jitter", "retry_delay"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0, got {getattr(self, name)}")
        if self.jitter > self.check_delay and self.check_delay > 0:
            raise ConfigError(f"jitter must not exceed check_delay, got {self.jitter} > {self.check_delay}")
        if not 0 <= self.size_tolerance < 1:
            raise ConfigError(f"size_tolerance must be in [0, 1), got {self.size_tolerance}")
        if not 0 <= self.mobile_size_tolerance < 1:
            raise ConfigError(f"mobile_size_tolerance must be in [0, 1), got {self.mobile_size_tolerance}")
        if self.min_html_size < 0:
            raise ConfigError(f"min_html_size must be >= 0, got {self.min_html_size}")
        if self.request_timeout <= 0:
            raise ConfigError(f"request_timeout must be > 0, got {self.request_timeout}")
        if self.max_retries < 0:
            raise ConfigError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.crawl_indexes <= 0:
            raise ConfigError(f"crawl_indexes must be > 0, got {self.crawl_indexes}")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides) -> AuditConfig:
        """Build a config from ``AIVIS_*`` variables; *overrides* win over both."""
        env = os.environ if environ is None else environ
        values: dict = {}
        for var, (name, parser) in _ENV_FIELDS.items():
            raw = env.get(var, "").strip()
            if not raw:
                continue
            try:
                values[name] = parser(raw)
            except ValueError:
                raise ConfigError(f"{var} must be a {parser.__name__}, got {raw!r}") from None
        values.update(overrides)
        return cls(**values)

    def without_pacing(self) -> AuditConfig:
        """Same config with every pause disabled (for --fast runs and tests)."""
        return dataclasses.replace(self, check_delay=0.0, bot_delay=0.0, jitter=0.0)
