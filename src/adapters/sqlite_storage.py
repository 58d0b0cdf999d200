"""SQLite storage adapter.

Implements the core DiaryStorePort using a simple SQLite database. The
blocking sqlite3 calls run in a worker thread so the event loop keeps
serving chat events.
"""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import date, datetime, timezone
from typing import List, Optional, Sequence

from core.blocks import BlockKind
from core.models import DiaryEntry, MessageBlockRecord


class SQLiteDiaryStore:
    """Thin SQLite wrapper that satisfies the DiaryStorePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - diary_entries: thread <-> page binding, one row per date
        - diary_message_blocks: remote blocks created for each chat message
        """

        with self._connect() as conn:
            # diary_entries binds a chat thread to the Notion page of one day.
            # Fields:
            # - thread_id: forum topic id (UNIQUE, re-insertion upserts)
            # - page_id / page_url: Notion page identity
            # - date: local calendar date as YYYY-MM-DD
            # - created_at: UTC timestamp of the first insertion
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS diary_entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    thread_id INTEGER NOT NULL UNIQUE,
                    page_id TEXT NOT NULL,
                    page_url TEXT NOT NULL,
                    date TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_diary_entries_date ON diary_entries(date)")
            # diary_message_blocks is the only source of truth for which
            # remote blocks a message produced.
            # Fields:
            # - message_id: chat message id (indexed for update/delete lookups)
            # - block_id: Notion block id (UNIQUE)
            # - block_kind: text, bookmark, embed, image or file
            # - ordinal: position inside the message's batch
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS diary_message_blocks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    message_id INTEGER NOT NULL,
                    block_id TEXT NOT NULL UNIQUE,
                    block_kind TEXT NOT NULL,
                    ordinal INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_diary_message_blocks_message_id "
                "ON diary_message_blocks(message_id)"
            )

    @staticmethod
    def _entry_from_row(row: sqlite3.Row) -> DiaryEntry:
        return DiaryEntry(
            thread_id=int(row["thread_id"]),
            page_id=row["page_id"],
            page_url=row["page_url"],
            date=date.fromisoformat(row["date"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _fetch_entry(self, column: str, value: object) -> Optional[DiaryEntry]:
        with self._connect() as conn:
            row = conn.execute(
                f"""
                SELECT thread_id, page_id, page_url, date, created_at
                FROM diary_entries
                WHERE {column} = ?
                ORDER BY id DESC
                LIMIT 1
                """,
                (value,),
            ).fetchone()
        return self._entry_from_row(row) if row else None

    async def get_entry_by_thread(self, thread_id: int) -> Optional[DiaryEntry]:
        """Return the diary entry bound to a thread, if any."""

        return await asyncio.to_thread(self._fetch_entry, "thread_id", thread_id)

    async def get_entry_by_date(self, day: date) -> Optional[DiaryEntry]:
        """Return the diary entry for a date, if any."""

        return await asyncio.to_thread(self._fetch_entry, "date", day.isoformat())

    def _upsert_entry(self, entry: DiaryEntry) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO diary_entries (thread_id, page_id, page_url, date, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(thread_id) DO UPDATE SET
                    page_id = excluded.page_id,
                    page_url = excluded.page_url,
                    date = excluded.date
                """,
                (
                    entry.thread_id,
                    entry.page_id,
                    entry.page_url,
                    entry.date.isoformat(),
                    entry.created_at.isoformat(),
                ),
            )

    async def upsert_entry(self, entry: DiaryEntry) -> None:
        """Insert an entry, or update page/url/date for an existing thread."""

        await asyncio.to_thread(self._upsert_entry, entry)

    def _get_message_blocks(self, message_id: int) -> List[MessageBlockRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT message_id, block_id, block_kind, ordinal
                FROM diary_message_blocks
                WHERE message_id = ?
                ORDER BY ordinal
                """,
                (message_id,),
            ).fetchall()
        return [
            MessageBlockRecord(
                message_id=int(row["message_id"]),
                block_id=row["block_id"],
                block_kind=BlockKind(row["block_kind"]),
                ordinal=int(row["ordinal"]),
            )
            for row in rows
        ]

    async def get_message_blocks(self, message_id: int) -> List[MessageBlockRecord]:
        """Return the records of a message ordered by ordinal."""

        return await asyncio.to_thread(self._get_message_blocks, message_id)

    def _insert_message_blocks(self, records: Sequence[MessageBlockRecord]) -> None:
        created_at = datetime.now(timezone.utc).isoformat()
        # One transaction: the whole record set is written or none of it.
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO diary_message_blocks (message_id, block_id, block_kind, ordinal, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (record.message_id, record.block_id, record.block_kind.value, record.ordinal, created_at)
                    for record in records
                ],
            )

    async def insert_message_blocks(self, records: Sequence[MessageBlockRecord]) -> None:
        await asyncio.to_thread(self._insert_message_blocks, records)

    def _delete(self, query: str, value: object) -> int:
        with self._connect() as conn:
            cur = conn.execute(query, (value,))
            return cur.rowcount

    async def delete_block_record(self, block_id: str) -> None:
        await asyncio.to_thread(self._delete, "DELETE FROM diary_message_blocks WHERE block_id = ?", block_id)

    async def delete_message_blocks(self, message_id: int) -> int:
        """Delete all records of a message and return how many were removed."""

        return await asyncio.to_thread(
            self._delete, "DELETE FROM diary_message_blocks WHERE message_id = ?", message_id
        )
