"""Application entry point for the diaryscope watcher."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv
from telethon import events

import settings
from adapters.heic_converter import HeicConverter
from adapters.sqlite_storage import SQLiteDiaryStore
from adapters.telegram_events import DiaryEventHandler
from adapters.telegram_threads import ForumThreads
from client import build_client, build_notion_client
from core.diary import DiaryBook
from core.errors import ConfigError
from core.processor import DiaryProcessor
from core.rules_engine import CompiledUrlRules, build_url_rules, describe_matcher
from core.source_keys import chat_key, entity_ref
from core.syncer import MessageSyncer
from get_session import authorize, login

NAME = "DIARYSCOPE"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/diaryscope.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _compile_rules() -> CompiledUrlRules:
    """Compile URL rules or stop the process; a bad rule is fatal."""

    try:
        return build_url_rules(settings.URL_RULES_CONFIG, settings.DEFAULT_CONVERT_TO)
    except ConfigError as exc:
        logging.getLogger(__name__).error("Invalid URL rules: %s", exc)
        raise SystemExit(1) from exc


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting diaryscope")

    rules = _compile_rules()
    logger.info("%s URL rules are loaded", len(rules.rules))

    storage = SQLiteDiaryStore(settings.DB_PATH)
    storage.init_db()

    notion = build_notion_client(settings.NOTION)
    syncer = MessageSyncer(
        store=storage,
        document=notion,
        converter=HeicConverter(),
        rules=rules,
        attachments_first=settings.DIARY.attachments_first,
    )
    processor = DiaryProcessor(storage, syncer)
    book = DiaryBook(storage, notion, settings.DIARY.title_format)

    client = build_client()
    client.loop.run_until_complete(client.connect())
    client.loop.run_until_complete(authorize(client))

    chat = client.loop.run_until_complete(client.get_entity(entity_ref(settings.DIARY.chat)))
    if not getattr(chat, "forum", False):
        raise RuntimeError(f"{settings.DIARY.chat} is not a forum group; enable topics first")
    handler = DiaryEventHandler(settings.DIARY, processor, book, ForumThreads(client, chat))

    # Handlers only catch what the event layer cannot surface itself, so one
    # bad message never stops the watcher.
    @client.on(events.NewMessage(chats=chat))
    async def on_new(event) -> None:
        try:
            await handler.on_new_message(event)
        except Exception:
            logger.exception("Error while processing new message")

    @client.on(events.MessageEdited(chats=chat))
    async def on_edit(event) -> None:
        try:
            await handler.on_message_edited(event)
        except Exception:
            logger.exception("Error while processing edited message")

    @client.on(events.MessageDeleted(chats=chat))
    async def on_delete(event) -> None:
        try:
            await handler.on_message_deleted(event)
        except Exception:
            logger.exception("Error while processing deleted messages")

    # Explicit lifecycle management makes start/shutdown behavior obvious.
    client.start()
    logger.info("Client connected. Watching %s for diary messages...", settings.DIARY.chat)
    try:
        client.run_until_disconnected()
    finally:
        client.loop.run_until_complete(notion.aclose())


def _check_rules() -> None:
    _configure_logging()
    try:
        rules = build_url_rules(settings.URL_RULES_CONFIG, settings.DEFAULT_CONVERT_TO)
    except ConfigError as exc:
        print(f"Invalid URL rules: {exc}")
        sys.exit(1)

    for index, rule in enumerate(rules.rules):
        types = ", ".join(block_type.value for block_type in rule.block_types)
        print(f"{index}. {describe_matcher(rule.matcher)} -> {types}")
    defaults = ", ".join(block_type.value for block_type in rules.default_block_types) or "(plain text)"
    print(f"default -> {defaults}")


async def _list_forum_groups(client) -> None:
    # Diary threads are forum topics, so only forum-enabled groups qualify.
    groups = []
    async for dialog in client.iter_dialogs():
        entity = getattr(dialog, "entity", None)
        if getattr(entity, "forum", False):
            groups.append(dialog)

    if not groups:
        print("No forum groups found. Enable topics in a group to use it as a diary.")
        return

    for index, dialog in enumerate(groups, start=1):
        entity = dialog.entity
        key = chat_key(getattr(entity, "username", None), dialog.id)
        title = getattr(entity, "title", None) or dialog.name
        print(f"{index}. {title} | {key}")


def _discover() -> None:
    _print_banner()
    client = build_client()

    async def _run_discover() -> None:
        await client.connect()
        if not await client.is_user_authorized():
            print("Authorization required. Starting login...")
            await authorize(client)
        await _list_forum_groups(client)
        await client.disconnect()

    client.loop.run_until_complete(_run_discover())


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="diaryscope")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the watcher")
    subparsers.add_parser("check-rules", help="Compile and validate the URL rules")
    subparsers.add_parser("discover", help="List forum groups usable as the diary chat")
    subparsers.add_parser("login", help="Authorize the Telegram session")

    args = parser.parse_args(argv)
    if args.command == "check-rules":
        _check_rules()
        return
    if args.command == "discover":
        _discover()
        return
    if args.command == "login":
        _print_banner()
        asyncio.run(login())
        return
    _run()


if __name__ == "__main__":
    main()
