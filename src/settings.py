"""Static configuration for diaryscope.

All user-editable settings (diary chat, Notion database, URL rules, logging)
live in a single JSON file for quick edits without touching Python. Secrets
stay in the environment (.env).
"""

import json
import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.config import DiaryConfig, NotionConfig, NotionTag
from core.errors import ConfigError
from core.source_keys import normalize_chat_key

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# The config file can be moved with DIARYSCOPE_CONFIG, e.g. for containers.
CONFIG_PATH = os.getenv("DIARYSCOPE_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


def _build_diary_config(raw: dict) -> DiaryConfig:
    raw_chat = str(raw.get("chat") or "").strip()
    if not raw_chat:
        raise ConfigError("diary.chat is required (@username or chat_id:<id>)")
    chat = normalize_chat_key(raw_chat)
    tz_name = raw.get("timezone", "UTC")
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown diary.timezone: {tz_name}") from exc
    return DiaryConfig(
        chat=chat,
        timezone=tz,
        title_format=raw.get("title_format", "%Y-%m-%d"),
        open_command=raw.get("open_command", "/diary"),
        attachments_first=bool(raw.get("attachments_first", True)),
    )


def _build_notion_config(raw: dict) -> NotionConfig:
    database_id = raw.get("database_id")
    if not database_id:
        raise ConfigError("notion.database_id is required")
    tags = []
    for tag in raw.get("tags", []):
        if not tag.get("property") or not tag.get("value"):
            raise ConfigError(f"notion.tags entries need property and value: {tag!r}")
        tags.append(
            NotionTag(
                property=tag["property"],
                value=tag["value"],
                multi_select=bool(tag.get("multi_select", False)),
            )
        )
    return NotionConfig(
        database_id=database_id,
        title_property=raw.get("title_property", "Name"),
        tags=tuple(tags),
        timeout_seconds=float(raw.get("timeout_seconds", 30)),
    )


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Diary chat, timezone and page title settings.
DIARY = _build_diary_config(_CONFIG.get("diary", {}))

# Notion database settings; the token itself comes from NOTION_TOKEN.
NOTION = _build_notion_config(_CONFIG.get("notion", {}))

# URL rules are compiled (and validated) by the app at startup.
_url_rules = _CONFIG.get("url_rules", {})
URL_RULES_CONFIG = _url_rules.get("rules", [])
DEFAULT_CONVERT_TO = _url_rules.get("default_convert_to", ["link"])

# Where to store the SQLite database.
DB_PATH = _resolve_path(_CONFIG.get("storage", {}).get("db_path", "diaryscope.db"))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
