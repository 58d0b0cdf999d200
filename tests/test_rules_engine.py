from __future__ import annotations

import logging

import pytest

from core.errors import ConfigError, EmptyBlockTypes, InvalidPattern, ValidationFailed
from core.rules_engine import (
    BlockType,
    GlobMatcher,
    PrefixMatcher,
    RegexMatcher,
    build_matcher,
    build_url_rules,
    classify_url,
    parse_block_types,
)


def test_build_matcher_kinds() -> None:
    assert isinstance(build_matcher({"glob": "https://example.com/*"}), GlobMatcher)
    assert isinstance(build_matcher({"regex": r"^https://x\.com/"}), RegexMatcher)
    assert isinstance(build_matcher({"prefix": "https://a/"}), PrefixMatcher)


@pytest.mark.parametrize(
    "pattern",
    [
        {},
        {"glob": "a", "prefix": "b"},
        {"wildcard": "https://*"},
        {"glob": ""},
        {"regex": "(unclosed"},
        "https://example.com/*",
    ],
)
def test_build_matcher_rejects_invalid_patterns(pattern) -> None:
    with pytest.raises(InvalidPattern):
        build_matcher(pattern)


def test_invalid_pattern_is_a_config_error() -> None:
    with pytest.raises(ConfigError):
        build_url_rules([{"pattern": {"regex": "["}, "convert_to": ["link"]}])


def test_parse_block_types_skips_unknown_and_duplicates(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        parsed = parse_block_types(["bookmark", "preview", "link", "bookmark"])
    assert parsed == (BlockType.BOOKMARK, BlockType.LINK)
    assert "preview" in caplog.text


@pytest.mark.parametrize("entry", ["https://github.com/*", ["bookmark"], None])
def test_rule_entry_must_be_an_object(entry) -> None:
    with pytest.raises(ConfigError, match="#1"):
        build_url_rules([{"pattern": {"prefix": "https://a/"}, "convert_to": ["link"]}, entry])


def test_rule_without_valid_block_types_fails() -> None:
    with pytest.raises(EmptyBlockTypes):
        build_url_rules([{"pattern": {"prefix": "https://a/"}, "convert_to": ["preview"]}])

    with pytest.raises(EmptyBlockTypes):
        build_url_rules([{"pattern": {"prefix": "https://a/"}}])


def test_expect_matches_failure_names_rule_and_url() -> None:
    config = [
        {
            "pattern": {"glob": "https://github.com/*/*"},
            "convert_to": ["bookmark"],
            "expect_matches": ["https://gitlab.com/a/b"],
        }
    ]
    with pytest.raises(ValidationFailed) as excinfo:
        build_url_rules(config)
    assert "#0" in str(excinfo.value)
    assert "https://gitlab.com/a/b" in str(excinfo.value)


def test_expect_no_matches_failure() -> None:
    config = [
        {"pattern": {"prefix": "https://a/"}, "convert_to": ["link"]},
        {
            "pattern": {"regex": r"youtube\.com/watch"},
            "convert_to": ["embed"],
            "expect_no_matches": ["https://www.youtube.com/watch?v=1"],
        },
    ]
    with pytest.raises(ValidationFailed) as excinfo:
        build_url_rules(config)
    assert "#1" in str(excinfo.value)


def test_expectations_that_hold_compile() -> None:
    compiled = build_url_rules(
        [
            {
                "pattern": {"glob": "https://github.com/*/*"},
                "convert_to": ["link", "bookmark"],
                "expect_matches": ["https://github.com/owner/repo"],
                "expect_no_matches": ["https://gitlab.com/owner/repo"],
            }
        ]
    )
    assert len(compiled.rules) == 1
    assert compiled.rules[0].block_types == (BlockType.LINK, BlockType.BOOKMARK)


def test_glob_star_stays_within_one_path_segment() -> None:
    compiled = build_url_rules(
        [{"pattern": {"glob": "https://github.com/*/*"}, "convert_to": ["bookmark"]}],
        default_convert_to=["link"],
    )
    assert classify_url("https://github.com/acme/repo", compiled) == (BlockType.BOOKMARK,)
    assert classify_url("https://github.com/acme/repo/issues/1", compiled) == (BlockType.LINK,)


def test_double_star_spans_path_segments() -> None:
    compiled = build_url_rules([{"pattern": {"glob": "https://github.com/**"}, "convert_to": ["bookmark"]}])
    assert classify_url("https://github.com/acme/repo/issues/1", compiled) == (BlockType.BOOKMARK,)
    assert classify_url("https://gitlab.com/acme/repo", compiled) == ()


def test_glob_brace_alternatives() -> None:
    compiled = build_url_rules(
        [
            {
                "pattern": {"glob": "https://{github,gitlab}.com/**"},
                "convert_to": ["bookmark"],
                "expect_matches": ["https://gitlab.com/acme/repo", "https://github.com/acme/repo"],
                "expect_no_matches": ["https://bitbucket.org/acme/repo"],
            }
        ]
    )
    assert classify_url("https://gitlab.com/acme/repo/-/issues/3", compiled) == (BlockType.BOOKMARK,)


def test_regex_matches_anywhere_unless_anchored() -> None:
    compiled = build_url_rules(
        [
            {"pattern": {"regex": r"^https://x\.com/"}, "convert_to": ["embed"]},
            {"pattern": {"regex": r"youtu\.be"}, "convert_to": ["embed"]},
        ]
    )
    assert classify_url("https://x.com/post/1", compiled) == (BlockType.EMBED,)
    assert classify_url("https://mirror.example/https://x.com/post", compiled) == ()
    assert classify_url("https://youtu.be/abc", compiled) == (BlockType.EMBED,)


def test_first_matching_rule_wins() -> None:
    compiled = build_url_rules(
        [
            {"pattern": {"prefix": "https://github.com/"}, "convert_to": ["bookmark"]},
            {"pattern": {"glob": "https://github.com/*"}, "convert_to": ["embed"]},
        ]
    )
    assert classify_url("https://github.com/a/b", compiled) == (BlockType.BOOKMARK,)


def test_default_block_types_apply_to_unmatched_urls() -> None:
    compiled = build_url_rules(
        [{"pattern": {"prefix": "https://github.com/"}, "convert_to": ["bookmark"]}],
        default_convert_to=["link"],
    )
    assert classify_url("https://example.com", compiled) == (BlockType.LINK,)

    no_default = build_url_rules([])
    assert classify_url("https://example.com", no_default) == ()


def test_only_link_is_inline() -> None:
    assert not BlockType.LINK.standalone
    assert BlockType.BOOKMARK.standalone
    assert BlockType.EMBED.standalone
