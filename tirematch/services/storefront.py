"""Async client for the Shopify Storefront GraphQL API.

Endpoint: POST https://{domain}/api/{version}/graphql.json
Auth: X-Shopify-Storefront-Access-Token header
"""

import time
from typing import Any

import httpx

from tirematch.core.config import Settings, get_settings
from tirematch.core.errors import UpstreamError, UpstreamNotConfigured
from tirematch.core.logging import log_external_call


class StorefrontClient:
    """Thin async wrapper that runs one GraphQL document per call."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = client or httpx.AsyncClient(timeout=15.0)

    @property
    def configured(self) -> bool:
        return self.settings.shopify_configured

    @property
    def domain(self) -> str:
        return self.settings.shopify_store_domain

    async def execute(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        operation: str = "graphql",
    ) -> dict[str, Any]:
        """Run a query or mutation and return its ``data`` object.

        Raises:
            UpstreamNotConfigured: domain or token missing.
            UpstreamError: network failure, non-200, unparseable body, or
                top-level GraphQL ``errors``.
        """
        if not self.configured:
            raise UpstreamNotConfigured("Shopify storefront is not configured")

        payload: dict[str, Any] = {"query": query}
        if variables is not None:
            payload["variables"] = variables

        start = time.time()
        try:
            resp = await self.client.post(
                self.settings.storefront_api_url,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "X-Shopify-Storefront-Access-Token": self.settings.shopify_storefront_token,
                },
            )
        except httpx.HTTPError as e:
            log_external_call("shopify", operation, False, (time.time() - start) * 1000)
            raise UpstreamError(f"Shopify request failed: {e}") from e

        duration_ms = (time.time() - start) * 1000
        if resp.status_code != 200:
            log_external_call("shopify", operation, False, duration_ms)
            raise UpstreamError(
                f"Shopify returned HTTP {resp.status_code}", status_code=resp.status_code
            )

        try:
            body = resp.json()
        except ValueError as e:
            log_external_call("shopify", operation, False, duration_ms)
            raise UpstreamError("Shopify returned a non-JSON body") from e

        errors = body.get("errors")
        if errors:
            log_external_call("shopify", operation, False, duration_ms)
            first = errors[0].get("message") if isinstance(errors[0], dict) else errors[0]
            raise UpstreamError(f"Shopify GraphQL error: {first}")

        log_external_call("shopify", operation, True, duration_ms)
        return body.get("data") or {}

    async def close(self) -> None:
        await self.client.aclose()
