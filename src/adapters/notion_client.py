"""Notion API adapter.

Implements the core DocumentPort over the Notion REST API with an async
httpx client. Every failure (network, timeout, non-2xx, malformed body)
surfaces as RemoteCallError; retries are left to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Tuple

import httpx

from adapters.notion_blocks import blocks_to_notion, page_properties, rich_text
from core.blocks import Block, RichTextSpan
from core.config import NotionConfig
from core.errors import RemoteCallError

LOGGER = logging.getLogger(__name__)

NOTION_API_BASE = "https://api.notion.com/v1"
NOTION_API_VERSION = "2022-06-28"


class NotionClient:
    """Thin async wrapper that satisfies the DocumentPort contract."""

    def __init__(
        self,
        token: str,
        config: NotionConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._http = http_client or httpx.AsyncClient(timeout=config.timeout_seconds)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Notion-Version": NOTION_API_VERSION,
        }

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, action: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._http.request(
                method,
                f"{NOTION_API_BASE}{path}",
                headers=self._headers,
                **kwargs,
            )
        except httpx.TimeoutException as exc:
            raise RemoteCallError(f"Failed to {action}: request timed out") from exc
        except httpx.HTTPError as exc:
            raise RemoteCallError(f"Failed to {action}: {exc}") from exc

        if not response.is_success:
            raise RemoteCallError(f"Failed to {action}: {response.status_code} - {response.text}")

        try:
            return response.json()
        except ValueError as exc:
            raise RemoteCallError(f"Failed to {action}: response is not JSON") from exc

    async def find_page_by_title(self, title: str) -> Optional[Tuple[str, str]]:
        """Return (page_id, url) of the diary page with this title, if any."""

        body = {
            "filter": {
                "property": self._config.title_property,
                "title": {"equals": title},
            },
            "page_size": 1,
        }
        result = await self._request(
            "POST",
            f"/databases/{self._config.database_id}/query",
            "query database",
            json=body,
        )
        pages = result.get("results") or []
        if not pages:
            return None
        return _page_ref(pages[0], "query database")

    async def create_page(self, title: str) -> Tuple[str, str]:
        """Create a diary page in the configured database."""

        body = {
            "parent": {"database_id": self._config.database_id},
            "properties": page_properties(self._config.title_property, title, self._config.tags),
        }
        result = await self._request("POST", "/pages", "create page", json=body)
        return _page_ref(result, "create page")

    async def upload_file(self, filename: str, content_type: str, data: bytes) -> str:
        """Upload bytes in a single part and return the file upload id."""

        created = await self._request(
            "POST",
            "/file_uploads",
            "create file upload",
            json={"mode": "single_part", "filename": filename, "content_type": content_type},
        )
        upload_id = created.get("id")
        if not upload_id:
            raise RemoteCallError("Failed to create file upload: response has no id")

        sent = await self._request(
            "POST",
            f"/file_uploads/{upload_id}/send",
            "send file upload",
            files={"file": (filename, data, content_type)},
        )
        status = sent.get("status")
        if status != "uploaded":
            raise RemoteCallError(f"File upload not completed: status = {status}")

        LOGGER.debug("Uploaded %s (%s bytes) as %s", filename, len(data), upload_id)
        return upload_id

    async def append_blocks(self, page_id: str, blocks: Sequence[Block]) -> List[str]:
        """Append blocks in one request and return their ids in order."""

        if not blocks:
            return []
        result = await self._request(
            "PATCH",
            f"/blocks/{page_id}/children",
            "append blocks",
            json={"children": blocks_to_notion(blocks)},
        )
        try:
            return [item["id"] for item in result["results"]]
        except (KeyError, TypeError) as exc:
            raise RemoteCallError("Failed to append blocks: unexpected response shape") from exc

    async def update_text_block(self, block_id: str, spans: Sequence[RichTextSpan]) -> None:
        await self._request(
            "PATCH",
            f"/blocks/{block_id}",
            "update block",
            json={"paragraph": {"rich_text": rich_text(spans)}},
        )

    async def delete_block(self, block_id: str) -> None:
        await self._request("DELETE", f"/blocks/{block_id}", "delete block")


def _page_ref(page: dict[str, Any], action: str) -> Tuple[str, str]:
    try:
        return page["id"], page["url"]
    except (KeyError, TypeError) as exc:
        raise RemoteCallError(f"Failed to {action}: page has no id or url") from exc
