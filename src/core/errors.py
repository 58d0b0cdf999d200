"""Error taxonomy shared by the core and its adapters.

Config errors are fatal at startup. Remote call and conversion errors are
recoverable and handled per message by the syncer and the chat layer.
"""

from __future__ import annotations


class DiaryError(Exception):
    """Base class for all diaryscope errors."""


class ConfigError(DiaryError):
    """Invalid user configuration detected at startup."""


class InvalidPattern(ConfigError):
    """A URL rule pattern could not be compiled."""


class EmptyBlockTypes(ConfigError):
    """A URL rule has no recognized block type in convert_to."""


class ValidationFailed(ConfigError):
    """A URL rule did not satisfy its expect_matches/expect_no_matches."""


class RemoteCallError(DiaryError):
    """A call to the document or chat platform failed."""


class ConversionError(DiaryError):
    """Image conversion failed; callers fall back to the original bytes."""
