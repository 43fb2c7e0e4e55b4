"""Async client for the Airtable REST API.

Endpoint: https://api.airtable.com/v0/{baseId}/{table}[/{recordId}]
Auth: Bearer API key. Records are wrapped in a ``fields`` envelope.
"""

import time
from typing import Any

import httpx

from tirematch.core.config import Settings, get_settings
from tirematch.core.errors import AirtableError, UpstreamNotConfigured
from tirematch.core.logging import log_external_call

AIRTABLE_API_URL = "https://api.airtable.com/v0"

# Airtable caps list pages at 100 records; stop following offsets after this many
MAX_PAGES = 20


class AirtableClient:
    """Thin async wrapper around one Airtable base."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = client or httpx.AsyncClient(timeout=15.0)

    def _url(self, table: str, record_id: str | None = None) -> str:
        url = f"{AIRTABLE_API_URL}/{self.settings.airtable_base_id}/{table}"
        return f"{url}/{record_id}" if record_id else url

    async def _request(
        self,
        method: str,
        table: str,
        record_id: str | None = None,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if not self.settings.airtable_configured:
            raise UpstreamNotConfigured("Airtable API key or Base ID not configured")

        operation = f"{method} {table}"
        start = time.time()
        try:
            resp = await self.client.request(
                method,
                self._url(table, record_id),
                params=params,
                json=json,
                headers={
                    "Authorization": f"Bearer {self.settings.airtable_api_key}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as e:
            log_external_call("airtable", operation, False, (time.time() - start) * 1000)
            raise AirtableError(f"Airtable request failed: {e}") from e

        duration_ms = (time.time() - start) * 1000
        if resp.status_code >= 400:
            log_external_call("airtable", operation, False, duration_ms)
            raise AirtableError(
                f"Airtable API error: {resp.status_code} - {resp.text[:200]}",
                status_code=resp.status_code,
            )

        log_external_call("airtable", operation, True, duration_ms)
        return resp.json()

    async def list_records(
        self, table: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """List records, following ``offset`` pagination."""
        records: list[dict[str, Any]] = []
        page_params = dict(params or {})

        for _ in range(MAX_PAGES):
            data = await self._request("GET", table, params=page_params)
            records.extend(data.get("records") or [])
            offset = data.get("offset")
            if not offset:
                break
            page_params["offset"] = offset

        return records

    async def get_record(self, table: str, record_id: str) -> dict[str, Any]:
        return await self._request("GET", table, record_id=record_id)

    async def create_record(self, table: str, fields: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", table, json={"fields": fields})

    async def update_record(
        self, table: str, record_id: str, fields: dict[str, Any]
    ) -> dict[str, Any]:
        """Partial update: only the given fields change."""
        return await self._request("PATCH", table, record_id=record_id, json={"fields": fields})

    async def close(self) -> None:
        await self.client.aclose()


def formula_string(value: str) -> str:
    """Quote a value for use inside an Airtable formula."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"
