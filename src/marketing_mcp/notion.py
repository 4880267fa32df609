"""Notion API access for the brand document and glossary data sources.

Only this module and the source adapters know Notion's block and page
shapes. Everything past the adapters works with ContentBlock records and
flat row dictionaries.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import Config
from .errors import ConfigurationError
from .http import UpstreamClient
from .models import BlockKind, ContentBlock

logger = logging.getLogger(__name__)

PAGE_SIZE = 100

# Nested blocks (toggles, columns, synced blocks) are followed this deep
MAX_BLOCK_DEPTH = 3

_BLOCK_KINDS = {
    "heading_1": BlockKind.HEADING_1,
    "heading_2": BlockKind.HEADING_2,
    "heading_3": BlockKind.HEADING_3,
    "paragraph": BlockKind.PARAGRAPH,
    "bulleted_list_item": BlockKind.LIST_ITEM,
    "numbered_list_item": BlockKind.LIST_ITEM,
    "toggle": BlockKind.PARAGRAPH,
    "quote": BlockKind.QUOTE,
    "callout": BlockKind.CALLOUT,
    "code": BlockKind.CODE,
    "to_do": BlockKind.CHECKLIST_ITEM,
    "divider": BlockKind.DIVIDER,
}


def rich_text_to_plain(items: list[dict[str, Any]] | None) -> str:
    """Concatenate the plain text of a Notion rich-text array."""
    if not items:
        return ""
    return "".join(item.get("plain_text", "") for item in items)


def block_to_content(block: dict[str, Any]) -> ContentBlock:
    """Convert a raw Notion block into a ContentBlock."""
    block_type = block.get("type", "")
    kind = _BLOCK_KINDS.get(block_type, BlockKind.OTHER)
    body = block.get(block_type) or {}
    text = rich_text_to_plain(body.get("rich_text")).strip() if isinstance(body, dict) else ""

    if text:
        if kind == BlockKind.LIST_ITEM:
            text = f"- {text}"
        elif kind == BlockKind.CHECKLIST_ITEM:
            text = f"[{'x' if body.get('checked') else ' '}] {text}"

    return ContentBlock(kind=kind, text=text)


def _property_value(prop: dict[str, Any]) -> Any:
    """Flatten one Notion page property to a plain Python value."""
    prop_type = prop.get("type")
    if prop_type == "title":
        return rich_text_to_plain(prop.get("title"))
    if prop_type == "rich_text":
        return rich_text_to_plain(prop.get("rich_text"))
    if prop_type == "multi_select":
        return [opt.get("name", "") for opt in prop.get("multi_select") or [] if opt.get("name")]
    if prop_type == "select":
        selected = prop.get("select") or {}
        return selected.get("name")
    if prop_type == "people":
        return [person.get("name") for person in prop.get("people") or [] if person.get("name")]
    return None


def page_to_row(page: dict[str, Any]) -> dict[str, Any]:
    """Flatten a Notion data source page into a row dictionary.

    The page's title property is exposed under ``"title"``; every other
    supported property keeps its Notion property name.
    """
    row: dict[str, Any] = {}
    for name, prop in (page.get("properties") or {}).items():
        if not isinstance(prop, dict):
            continue
        value = _property_value(prop)
        if value is None:
            continue
        if prop.get("type") == "title":
            row["title"] = value
        else:
            row[name] = value
    return row


class NotionClient:
    """Paginated reads from the Notion REST API."""

    def __init__(
        self,
        config: Config,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.configured = config.notion_configured
        headers = {"Notion-Version": config.notion_version}
        if self.configured:
            headers["Authorization"] = f"Bearer {config.notion_token.get_secret_value()}"
        self._http = UpstreamClient.from_config(
            "notion",
            config.notion_api_url,
            config,
            timeout=config.notion_timeout_seconds,
            headers=headers,
            transport=transport,
        )

    def _require_token(self) -> None:
        if not self.configured:
            raise ConfigurationError("NOTION_TOKEN is not configured")

    async def aclose(self) -> None:
        await self._http.aclose()

    async def list_block_children(self, block_id: str, _depth: int = 0) -> list[dict[str, Any]]:
        """Return every descendant block of ``block_id`` in document order.

        Follows ``next_cursor`` until ``has_more`` is false, and descends
        into blocks with children up to MAX_BLOCK_DEPTH.
        """
        self._require_token()
        blocks: list[dict[str, Any]] = []
        cursor: str | None = None

        while True:
            params: dict[str, Any] = {"page_size": PAGE_SIZE}
            if cursor:
                params["start_cursor"] = cursor
            response = await self._http.get_json(f"/blocks/{block_id}/children", params=params)

            for block in response.get("results", []):
                blocks.append(block)
                # Child pages are separate documents
                if (
                    block.get("has_children")
                    and block.get("type") != "child_page"
                    and _depth + 1 < MAX_BLOCK_DEPTH
                ):
                    blocks.extend(await self.list_block_children(block["id"], _depth + 1))

            cursor = response.get("next_cursor") if response.get("has_more") else None
            if not cursor:
                break

        logger.debug("Fetched Notion blocks", extra={"block_id": block_id, "count": len(blocks)})
        return blocks

    async def query_data_source(self, data_source_id: str) -> list[dict[str, Any]]:
        """Return every page of a Notion data source."""
        self._require_token()
        if not data_source_id:
            raise ConfigurationError("Notion data source id is not configured")

        pages: list[dict[str, Any]] = []
        cursor: str | None = None

        while True:
            body: dict[str, Any] = {"page_size": PAGE_SIZE}
            if cursor:
                body["start_cursor"] = cursor
            response = await self._http.post_json(f"/data_sources/{data_source_id}/query", body)

            pages.extend(
                page for page in response.get("results", []) if page.get("object") == "page"
            )

            cursor = response.get("next_cursor") if response.get("has_more") else None
            if not cursor:
                break

        return pages
