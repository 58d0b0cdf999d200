"""URL rule compilation and matching logic (core domain)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import re
from typing import Iterable, List, Tuple, Union

from wcmatch import glob

from core.errors import ConfigError, EmptyBlockTypes, InvalidPattern, ValidationFailed

LOGGER = logging.getLogger(__name__)

# Path-style globs: `*` stays inside one segment while `**` spans several.
GLOB_FLAGS = glob.GLOBSTAR | glob.BRACE | glob.DOTGLOB | glob.FORCEUNIX


class BlockType(str, Enum):
    """Output forms a URL can be converted into."""

    LINK = "link"
    BOOKMARK = "bookmark"
    EMBED = "embed"

    @property
    def standalone(self) -> bool:
        # Standalone forms cannot live inside running text.
        return self is not BlockType.LINK


@dataclass(frozen=True)
class GlobMatcher:
    pattern: str


@dataclass(frozen=True)
class RegexMatcher:
    regex: re.Pattern


@dataclass(frozen=True)
class PrefixMatcher:
    prefix: str


Matcher = Union[GlobMatcher, RegexMatcher, PrefixMatcher]


@dataclass(frozen=True)
class UrlRule:
    """Compiled rule: a matcher and the block types it produces."""

    matcher: Matcher
    block_types: Tuple[BlockType, ...]


@dataclass(frozen=True)
class CompiledUrlRules:
    """Ordered rules plus the fallback for URLs no rule matches."""

    rules: Tuple[UrlRule, ...]
    default_block_types: Tuple[BlockType, ...]


EMPTY_RULES = CompiledUrlRules(rules=(), default_block_types=())


def matches(matcher: Matcher, url: str) -> bool:
    """Return True if the matcher accepts the URL."""

    if isinstance(matcher, GlobMatcher):
        return glob.globmatch(url, matcher.pattern, flags=GLOB_FLAGS)
    if isinstance(matcher, RegexMatcher):
        return matcher.regex.search(url) is not None
    if isinstance(matcher, PrefixMatcher):
        return url.startswith(matcher.prefix)
    raise TypeError(f"Unsupported matcher: {matcher!r}")


def describe_matcher(matcher: Matcher) -> str:
    if isinstance(matcher, GlobMatcher):
        return f"glob:{matcher.pattern}"
    if isinstance(matcher, RegexMatcher):
        return f"regex:{matcher.regex.pattern}"
    return f"prefix:{matcher.prefix}"


def build_matcher(pattern_config: dict) -> Matcher:
    """Build a matcher from a {glob|regex|prefix: str} mapping."""

    if not isinstance(pattern_config, dict) or len(pattern_config) != 1:
        raise InvalidPattern(
            f"Pattern must have exactly one of glob, regex or prefix: {pattern_config!r}"
        )
    kind, value = next(iter(pattern_config.items()))
    if not isinstance(value, str) or not value:
        raise InvalidPattern(f"Pattern value must be a non-empty string: {pattern_config!r}")

    if kind == "glob":
        return GlobMatcher(value)
    if kind == "regex":
        try:
            return RegexMatcher(re.compile(value))
        except re.error as exc:
            raise InvalidPattern(f"Invalid regex pattern '{value}': {exc}") from exc
    if kind == "prefix":
        return PrefixMatcher(value)
    raise InvalidPattern(f"Unknown pattern kind '{kind}'")


def parse_block_types(raw_types: Iterable[str]) -> Tuple[BlockType, ...]:
    """Parse convert_to strings, dropping unknown tags with a warning."""

    parsed: List[BlockType] = []
    for raw in raw_types:
        try:
            block_type = BlockType(raw)
        except ValueError:
            LOGGER.warning("Unknown block type in convert_to, skipping: %s", raw)
            continue
        if block_type not in parsed:
            parsed.append(block_type)
    return tuple(parsed)


def _validate_expectations(index: int, rule: dict, matcher: Matcher) -> None:
    label = describe_matcher(matcher)
    for url in rule.get("expect_matches", []) or []:
        if not matches(matcher, url):
            raise ValidationFailed(
                f"URL rule #{index} ({label}) expected to match '{url}' but did not"
            )
    for url in rule.get("expect_no_matches", []) or []:
        if matches(matcher, url):
            raise ValidationFailed(
                f"URL rule #{index} ({label}) expected NOT to match '{url}' but it did"
            )


def build_url_rules(
    rules_config: Iterable[dict],
    default_convert_to: Iterable[str] = (),
) -> CompiledUrlRules:
    """Compile URL rule configs and check their expectations.

    Misconfigured patterns fail here, at startup, instead of silently
    misclassifying live messages later.
    """

    compiled: List[UrlRule] = []
    for index, rule in enumerate(rules_config):
        if not isinstance(rule, dict):
            raise ConfigError(f"URL rule #{index} must be an object, got {rule!r}")
        matcher = build_matcher(rule.get("pattern"))
        block_types = parse_block_types(rule.get("convert_to", []) or [])
        if not block_types:
            raise EmptyBlockTypes(
                f"No valid block types in convert_to for URL rule #{index} "
                f"({describe_matcher(matcher)})"
            )
        _validate_expectations(index, rule, matcher)
        compiled.append(UrlRule(matcher=matcher, block_types=block_types))

    return CompiledUrlRules(
        rules=tuple(compiled),
        default_block_types=parse_block_types(default_convert_to),
    )


def classify_url(url: str, compiled: CompiledUrlRules) -> Tuple[BlockType, ...]:
    """Return the block types for a URL.

    Rules are tried in declaration order and only the first match applies.
    URLs nothing matches get the default types, which may be empty.
    """

    for rule in compiled.rules:
        if matches(rule.matcher, url):
            return rule.block_types
    return compiled.default_block_types
