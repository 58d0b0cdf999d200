"""Shared reply formatting helpers.

Keeping formatting here keeps replies in the diary group consistent and
easy to adjust. Bodies are Telegram HTML.
"""

from __future__ import annotations

import html

from core.models import DiaryEntry
from core.syncer import SyncReport

DIVIDER = "──────────────"


def format_diary_opened(entry: DiaryEntry, title: str, created: bool) -> str:
    """Return the reply posted when the open command runs."""

    safe_title = html.escape(title)
    safe_link = html.escape(entry.page_url)
    heading = "New diary opened" if created else "Diary already open"
    return "\n".join(
        [
            f"<b>{heading}:</b> {safe_title}",
            f"<b>Page:</b> <a href=\"{safe_link}\">{safe_link}</a>",
        ]
    )


def format_sync_error(action: str, error: Exception) -> str:
    """Return the error annotation for a failed sync of one message."""

    return "\n".join(
        [
            f"<b>Diary sync failed</b> ({html.escape(action)})",
            DIVIDER,
            html.escape(str(error)),
        ]
    )


def format_report_failures(action: str, report: SyncReport) -> str:
    """Return the annotation listing blocks an update/delete could not touch."""

    lines = [
        f"<b>Diary sync incomplete</b> ({html.escape(action)})",
        f"{len(report.failures)} block(s) failed, {len(report.block_ids)} succeeded",
        DIVIDER,
    ]
    for failure in report.failures:
        lines.append(f"<code>{html.escape(failure.block_id)}</code>: {html.escape(failure.error)}")
    return "\n".join(lines)
