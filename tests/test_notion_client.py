from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from adapters.notion_client import NOTION_API_VERSION, NotionClient
from core.blocks import BookmarkBlock, RichTextSpan, TextBlock
from core.config import NotionConfig, NotionTag
from core.errors import RemoteCallError

CONFIG = NotionConfig(
    database_id="db-1",
    title_property="Name",
    tags=(NotionTag("Type", "Diary"),),
    timeout_seconds=5,
)


def _client(handler) -> NotionClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return NotionClient("secret-token", CONFIG, http_client=http)


def test_create_page_sends_properties_and_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "page-1", "url": "https://notion.so/page-1"})

    result = asyncio.run(_client(handler).create_page("2024-03-02"))

    assert result == ("page-1", "https://notion.so/page-1")
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/v1/pages"
    assert request.headers["Authorization"] == "Bearer secret-token"
    assert request.headers["Notion-Version"] == NOTION_API_VERSION
    body = json.loads(request.content)
    assert body["parent"] == {"database_id": "db-1"}
    assert body["properties"]["Type"] == {"select": {"name": "Diary"}}


def test_find_page_by_title() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert request.url.path == "/v1/databases/db-1/query"
        assert body["filter"] == {"property": "Name", "title": {"equals": "2024-03-02"}}
        return httpx.Response(200, json={"results": [{"id": "p", "url": "https://notion.so/p"}]})

    assert asyncio.run(_client(handler).find_page_by_title("2024-03-02")) == ("p", "https://notion.so/p")


def test_find_page_by_title_without_results() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"results": []})

    assert asyncio.run(_client(handler).find_page_by_title("2024-03-02")) is None


def test_append_blocks_returns_ids_in_order() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PATCH"
        assert request.url.path == "/v1/blocks/page-1/children"
        children = json.loads(request.content)["children"]
        assert [child["type"] for child in children] == ["paragraph", "bookmark"]
        return httpx.Response(200, json={"results": [{"id": "b1"}, {"id": "b2"}]})

    blocks = [TextBlock(spans=(RichTextSpan("hi"),)), BookmarkBlock(url="https://a.example")]
    assert asyncio.run(_client(handler).append_blocks("page-1", blocks)) == ["b1", "b2"]


def test_append_nothing_makes_no_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    assert asyncio.run(_client(handler).append_blocks("page-1", [])) == []


def test_update_and_delete_block() -> None:
    seen: list[tuple[str, str, bytes]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, request.content))
        return httpx.Response(200, json={"id": "b1"})

    client = _client(handler)

    async def scenario():
        await client.update_text_block("b1", [RichTextSpan("new")])
        await client.delete_block("b1")

    asyncio.run(scenario())

    assert seen[0][:2] == ("PATCH", "/v1/blocks/b1")
    assert json.loads(seen[0][2]) == {
        "paragraph": {"rich_text": [{"type": "text", "text": {"content": "new"}}]}
    }
    assert seen[1][:2] == ("DELETE", "/v1/blocks/b1")


def test_upload_file_two_steps() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/v1/file_uploads":
            return httpx.Response(200, json={"id": "up-1", "status": "pending"})
        return httpx.Response(200, json={"id": "up-1", "status": "uploaded"})

    upload_id = asyncio.run(_client(handler).upload_file("a.jpg", "image/jpeg", b"\xff\xd8data"))

    assert upload_id == "up-1"
    assert json.loads(seen[0].content) == {
        "mode": "single_part",
        "filename": "a.jpg",
        "content_type": "image/jpeg",
    }
    assert seen[1].url.path == "/v1/file_uploads/up-1/send"
    assert seen[1].headers["Content-Type"].startswith("multipart/form-data")
    assert b"\xff\xd8data" in seen[1].content


def test_upload_not_completed_is_an_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/file_uploads":
            return httpx.Response(200, json={"id": "up-1"})
        return httpx.Response(200, json={"id": "up-1", "status": "pending"})

    with pytest.raises(RemoteCallError, match="status = pending"):
        asyncio.run(_client(handler).upload_file("a.pdf", "application/pdf", b"x"))


def test_http_error_status_becomes_remote_call_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, text="validation_error")

    with pytest.raises(RemoteCallError, match="Failed to create page: 400 - validation_error"):
        asyncio.run(_client(handler).create_page("x"))


def test_transport_errors_become_remote_call_error() -> None:
    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    def refused(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(RemoteCallError, match="timed out"):
        asyncio.run(_client(timeout).delete_block("b1"))
    with pytest.raises(RemoteCallError, match="refused"):
        asyncio.run(_client(refused).delete_block("b1"))


def test_non_json_body_is_an_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    with pytest.raises(RemoteCallError, match="not JSON"):
        asyncio.run(_client(handler).delete_block("b1"))
