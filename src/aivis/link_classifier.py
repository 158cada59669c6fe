# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Priority-ordered link/domain classifier.

Maps a URL or bare domain to a single link-type code using ordered pattern
rules (first match wins). Each raw pattern is classified once into one of
three matchers, cheapest first:

  1. contains  – substring on the hostname (or on the full input when the
                 pattern carries a path fragment such as ``spotify.com/show``)
  2. endsWith  – suffix on the hostname (``.gov``, ``*.libsyn.com``)
  3. regex     – pre-compiled, case-insensitive, searched in the hostname

The classifier is immutable after construction and safe to share across
threads; ``with_patterns()`` returns a new instance instead of mutating.
"""

from __future__ import annotations

import functools
import re
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from importlib import resources
from types import MappingProxyType
from urllib.parse import urlsplit

import yaml
from pydantic import BaseModel, Field, ValidationError

from aivis.errors import ConfigError

DEFAULT_CODE = "oth"
DEFAULT_NAME = "Other"
UNKNOWN_NAME = "Unknown"

_REGEX_CHARS_RE = re.compile(r"[\[\](){}+?|\\^$]")
_PATH_FRAGMENT_RE = re.compile(r"[/?#=]")
_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)
_HOST_SPLIT_RE = re.compile(r"[/?#]")


class PatternKind(StrEnum):
    CONTAINS = "contains"
    ENDS_WITH = "endsWith"
    REGEX = "regex"


def classify_pattern(pattern: str) -> PatternKind:
    """Decide how a raw pattern is matched, from its own syntax alone."""
    if _REGEX_CHARS_RE.search(pattern) or ".*" in pattern:
        return PatternKind.REGEX
    if pattern.startswith(("*", ".")):
        return PatternKind.ENDS_WITH
    return PatternKind.CONTAINS


def extract_hostname(value: str) -> str:
    """Lowercase hostname without scheme, ``www.``, port, path, query or fragment."""
    s = (value or "").strip()
    if not s:
        return ""
    if _SCHEME_RE.match(s):
        try:
            host = urlsplit(s).hostname or ""
        except ValueError:
            host = ""
        if host:
            return host.lower().removeprefix("www.")
        s = _SCHEME_RE.sub("", s)
    s = _HOST_SPLIT_RE.split(s, maxsplit=1)[0].lower()
    s = s.removeprefix("www.")
    return s.split(":", 1)[0] if s.count(":") == 1 else s


@dataclass(frozen=True, slots=True)
class PatternRule:
    """One link type with its patterns already split by matcher kind."""

    code: str
    name: str
    description: str = ""
    contains: tuple[str, ...] = ()
    ends_with: tuple[str, ...] = ()
    regex: tuple[str, ...] = ()

    @classmethod
    def from_patterns(cls, code: str, name: str, patterns: Iterable[str], description: str = "") -> PatternRule:
        contains: list[str] = []
        ends_with: list[str] = []
        regex: list[str] = []
        for raw in patterns:
            kind = classify_pattern(raw)
            if kind is PatternKind.REGEX:
                regex.append(raw[1:-1] if len(raw) > 1 and raw.startswith("/") and raw.endswith("/") else raw)
            elif kind is PatternKind.ENDS_WITH:
                ends_with.append(raw.removeprefix("*").lower())
            else:
                contains.append(raw.lower())
        return cls(
            code=code,
            name=name,
            description=description,
            contains=tuple(contains),
            ends_with=tuple(ends_with),
            regex=tuple(regex),
        )


class _RuleRecord(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    patterns: list[str] = Field(default_factory=list)


def _compile(code: str, patterns: tuple[str, ...]) -> tuple[re.Pattern[str], ...]:
    try:
        return tuple(re.compile(p, re.IGNORECASE) for p in patterns)
    except re.error as e:
        raise ConfigError(f"invalid regex in link type {code!r}: {e}") from e


class LinkClassifier:
    """Ordered rule set plus its compiled-regex cache, keyed by rule code."""

    __slots__ = ("_rules", "_compiled", "_names")

    def __init__(self, rules: Iterable[PatternRule]) -> None:
        self._rules: tuple[PatternRule, ...] = tuple(rules)
        codes = [r.code for r in self._rules]
        if len(set(codes)) != len(codes):
            raise ConfigError("link type codes must be unique")
        self._compiled: Mapping[str, tuple[re.Pattern[str], ...]] = MappingProxyType(
            {r.code: _compile(r.code, r.regex) for r in self._rules if r.regex}
        )
        self._names: Mapping[str, str] = MappingProxyType({r.code: r.name for r in self._rules})

    @classmethod
    def from_rules(cls, records: Iterable[Mapping]) -> LinkClassifier:
        """Build from ``{code, name, description?, patterns}`` mappings."""
        try:
            parsed = [_RuleRecord.model_validate(r) for r in records]
        except ValidationError as e:
            raise ConfigError(f"invalid link type record: {e}") from e
        return cls(PatternRule.from_patterns(r.code, r.name, r.patterns, r.description) for r in parsed)

    @classmethod
    def from_yaml(cls, text: str) -> LinkClassifier:
        try:
            records = yaml.safe_load(text) or []
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid link types file: {e}") from e
        if not isinstance(records, list):
            raise ConfigError("link types file must contain a list of rules")
        return cls.from_rules(records)

    @property
    def rules(self) -> tuple[PatternRule, ...]:
        return self._rules

    def classify(self, value: str) -> str:
        """Return the code of the first rule matching *value*, else ``DEFAULT_CODE``."""
        full = (value or "").strip().lower()
        host = extract_hostname(value)

        for rule in self._rules:
            for pattern in rule.contains:
                if _PATH_FRAGMENT_RE.search(pattern):
                    if pattern in full:
                        return rule.code
                elif host and pattern in host:
                    return rule.code

            if host:
                for suffix in rule.ends_with:
                    if host.endswith(suffix):
                        return rule.code

                for compiled in self._compiled.get(rule.code, ()):
                    if compiled.search(host):
                        return rule.code

        return DEFAULT_CODE

    def classify_many(self, values: Iterable[str]) -> dict[str, str]:
        """Classify a batch; keys keep first-seen input order."""
        return {v: self.classify(v) for v in values}

    def classification_stats(self, values: Iterable[str]) -> Counter[str]:
        return Counter(self.classify(v) for v in values)

    def rule_name(self, code: str) -> str:
        if code == DEFAULT_CODE and code not in self._names:
            return DEFAULT_NAME
        return self._names.get(code, UNKNOWN_NAME)

    def names(self) -> dict[str, str]:
        return dict(self._names)

    def with_patterns(
        self,
        code: str,
        *,
        contains: Iterable[str] | None = None,
        ends_with: Iterable[str] | None = None,
        regex: Iterable[str] | None = None,
    ) -> LinkClassifier:
        """Copy of this classifier with one rule's pattern lists replaced."""
        if code not in self._names:
            raise KeyError(f"link type {code!r} does not exist")
        rules = []
        for rule in self._rules:
            if rule.code == code:
                rule = PatternRule(
                    code=rule.code,
                    name=rule.name,
                    description=rule.description,
                    contains=rule.contains if contains is None else tuple(p.lower() for p in contains),
                    ends_with=rule.ends_with if ends_with is None else tuple(p.lower() for p in ends_with),
                    regex=rule.regex if regex is None else tuple(regex),
                )
            rules.append(rule)
        return LinkClassifier(rules)


@functools.lru_cache(maxsize=1)
def default_classifier() -> LinkClassifier:
    """Classifier built from the bundled ``aivis/data/link_types.yaml``."""
    text = resources.files("aivis.data").joinpath("link_types.yaml").read_text(encoding="utf-8")
    return LinkClassifier.from_yaml(text)


def classify_link(value: str) -> str:
    return default_classifier().classify(value)
