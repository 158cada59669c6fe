# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for aivis.link_classifier — ordered, first-match-wins link typing."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from aivis.errors import ConfigError
from aivis.link_classifier import (
    DEFAULT_CODE,
    LinkClassifier,
    PatternKind,
    PatternRule,
    classify_link,
    classify_pattern,
    default_classifier,
    extract_hostname,
)

KNOWN_DOMAINS = [
    "youtube.com",
    "chatgpt.com",
    "feeds.libsyn.com",
    "x.com",
    "reddit.com",
    "en.wikipedia.org",
    "docs.python.org",
    "whitehouse.gov",
    "ox.ac.uk",
    "example.com",
]


# ── pattern kinds ────────────────────────────────────────────────────


class TestClassifyPattern:
    @pytest.mark.parametrize(
        "pattern,kind",
        [
            ("youtube.com", PatternKind.CONTAINS),
            ("open.spotify.com/show", PatternKind.CONTAINS),
            ("*.libsyn.com", PatternKind.ENDS_WITH),
            (".gov", PatternKind.ENDS_WITH),
            ("^x\\.com$", PatternKind.REGEX),
            ("/^docs\\./", PatternKind.REGEX),
            ("news.*today", PatternKind.REGEX),
        ],
    )
    def test_kind(self, pattern, kind):
        assert classify_pattern(pattern) is kind

    def test_regex_delimiters_stripped(self):
        rule = PatternRule.from_patterns("dev", "Developer", ["/^docs\\./"])
        assert rule.regex == ("^docs\\.",)

    def test_ends_with_star_stripped(self):
        rule = PatternRule.from_patterns("pod", "Podcasts", ["*.libsyn.com", "Podcasts.Apple.com"])
        assert rule.ends_with == (".libsyn.com",)
        assert rule.contains == ("podcasts.apple.com",)


class TestExtractHostname:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("HTTPS://WWW.Example.com:8080/path?q=1", "example.com"),
            ("example.com/path", "example.com"),
            ("www.foo.org:443", "foo.org"),
            ("sub.domain.io#frag", "sub.domain.io"),
            ("", ""),
        ],
    )
    def test_extract(self, value, expected):
        assert extract_hostname(value) == expected


# ── bundled rules ────────────────────────────────────────────────────


class TestDefaultClassifier:
    @pytest.mark.parametrize(
        "value,code",
        [
            ("https://www.youtube.com/watch?v=abc", "vid"),
            ("https://open.spotify.com/show/abc123", "pod"),
            ("feeds.libsyn.com", "pod"),
            ("x.com", "soc"),
            ("docs.python.org", "dev"),
            ("whitehouse.gov", "gov"),
            ("www.ox.ac.uk", "edu"),
            ("https://claude.ai/chat/1", "ai"),
        ],
    )
    def test_known(self, value, code):
        assert classify_link(value) == code

    def test_path_pattern_needs_path(self):
        # open.spotify.com alone is not a podcast link
        assert classify_link("https://open.spotify.com/track/1") == DEFAULT_CODE

    def test_regex_anchored_to_host(self):
        assert classify_link("box.com") == DEFAULT_CODE

    def test_first_match_wins(self):
        # forums are listed before news; "^news\." would also match
        assert classify_link("news.ycombinator.com") == "ugc"
        assert classify_link("news.example.org") == "news"

    def test_unmatched_and_empty(self):
        assert classify_link("example.com") == DEFAULT_CODE
        assert classify_link("") == DEFAULT_CODE

    def test_rule_names(self):
        clf = default_classifier()
        assert clf.rule_name("vid") == "Video"
        assert clf.rule_name(DEFAULT_CODE) == "Other"
        assert clf.rule_name("zzz") == "Unknown"
        assert clf.names()["gov"] == "Government"

    def test_classify_many_keeps_order(self):
        result = default_classifier().classify_many(["youtube.com", "example.com", "youtube.com"])
        assert list(result.items()) == [("youtube.com", "vid"), ("example.com", DEFAULT_CODE)]

    def test_stats(self):
        stats = default_classifier().classification_stats(["youtube.com", "vimeo.com", "example.com"])
        assert stats["vid"] == 2
        assert stats[DEFAULT_CODE] == 1

    @given(st.text(max_size=80))
    def test_any_input_maps_to_known_code(self, value):
        clf = default_classifier()
        code = clf.classify(value)
        assert code == DEFAULT_CODE or code in clf.names()
        assert clf.classify(value) == code

    @given(st.sampled_from(KNOWN_DOMAINS), st.booleans())
    def test_case_and_scheme_insensitive(self, domain, with_scheme):
        value = f"HTTPS://{domain.upper()}/" if with_scheme else domain.upper()
        assert classify_link(value) == classify_link(domain)


# ── construction and copies ──────────────────────────────────────────


class TestConstruction:
    def test_from_rules(self):
        clf = LinkClassifier.from_rules(
            [
                {"code": "shop", "name": "Shops", "patterns": [".shop", "store.example.com"]},
                {"code": "wiki", "name": "Wikis", "patterns": ["/wiki\\./"]},
            ]
        )
        assert clf.classify("acme.shop") == "shop"
        assert clf.classify("store.example.com") == "shop"
        assert clf.classify("en.wiki.org") == "wiki"
        assert [r.code for r in clf.rules] == ["shop", "wiki"]

    def test_duplicate_codes_rejected(self):
        with pytest.raises(ConfigError, match="unique"):
            LinkClassifier.from_rules(
                [{"code": "a", "name": "A", "patterns": []}, {"code": "a", "name": "B", "patterns": []}]
            )

    def test_invalid_regex_rejected(self):
        with pytest.raises(ConfigError, match="invalid regex"):
            LinkClassifier.from_rules([{"code": "x", "name": "X", "patterns": ["(unclosed"]}])

    def test_missing_fields_rejected(self):
        with pytest.raises(ConfigError):
            LinkClassifier.from_rules([{"code": "x"}])

    def test_yaml_must_be_list(self):
        with pytest.raises(ConfigError):
            LinkClassifier.from_yaml("code: x\nname: X\n")

    def test_with_patterns_returns_copy(self):
        clf = default_classifier()
        updated = clf.with_patterns("vid", contains=["example.com"])
        assert updated is not clf
        assert updated.classify("example.com") == "vid"
        assert updated.classify("youtube.com") == DEFAULT_CODE
        assert clf.classify("example.com") == DEFAULT_CODE
        assert clf.classify("youtube.com") == "vid"

    def test_with_patterns_unknown_code(self):
        with pytest.raises(KeyError):
            default_classifier().with_patterns("nope", contains=["a.com"])
