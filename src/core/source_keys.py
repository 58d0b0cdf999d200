"""Helpers for working with chat keys (`@username` or `chat_id:<id>`)."""

from __future__ import annotations

from typing import Optional, Union

from core.errors import ConfigError

CHAT_ID_PREFIX = "chat_id:"


def chat_key(username: Optional[str], chat_id: int) -> str:
    """Normalize a chat key using the single rule enforced across the app."""

    if username:
        return f"@{username.lower()}"
    # Fallback: always stable and universal
    return f"{CHAT_ID_PREFIX}{chat_id}"


def normalize_chat_key(raw_value: str) -> str:
    """Validate a configured chat key and return its normalized form."""

    raw_value = raw_value.strip()
    if raw_value.startswith("@"):
        username = raw_value[1:]
        if not username or not username.replace("_", "a").isalnum():
            raise ConfigError(f"Chat username is invalid: {raw_value}")
        return f"@{username.lower()}"

    if raw_value.startswith(CHAT_ID_PREFIX):
        chat_value = raw_value[len(CHAT_ID_PREFIX) :]
        try:
            return f"{CHAT_ID_PREFIX}{int(chat_value)}"
        except ValueError as exc:
            raise ConfigError(f"chat_id must be numeric: {raw_value}") from exc

    raise ConfigError(f"Chat key must start with @ or {CHAT_ID_PREFIX}: {raw_value}")


def entity_ref(key: str) -> Union[int, str]:
    """Return what Telethon's get_entity expects for a normalized key."""

    if key.startswith(CHAT_ID_PREFIX):
        return int(key[len(CHAT_ID_PREFIX) :])
    return key
