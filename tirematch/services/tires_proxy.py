"""Forward recommendation requests to an external AI service.

Used instead of the inline pipeline when ``TIRES_UPSTREAM_URL`` is set. The
request body is passed through unchanged and the upstream JSON is returned
as-is.
"""

import time
from typing import Any

import httpx

from tirematch.core.config import Settings, get_settings
from tirematch.core.errors import UpstreamError, UpstreamNotConfigured
from tirematch.core.logging import log_external_call, logger


class TiresProxy:
    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = client or httpx.AsyncClient(timeout=30.0)

    @property
    def enabled(self) -> bool:
        return bool(self.settings.tires_upstream_url)

    async def forward(self, payload: dict[str, Any]) -> Any:
        if not self.enabled:
            raise UpstreamNotConfigured("TIRES_UPSTREAM_URL is not set")

        headers = {"Content-Type": "application/json"}
        if self.settings.tires_upstream_key:
            headers["Authorization"] = f"Bearer {self.settings.tires_upstream_key}"

        start = time.time()
        try:
            resp = await self.client.post(
                self.settings.tires_upstream_url, json=payload, headers=headers
            )
        except httpx.HTTPError as e:
            log_external_call("tires_upstream", "predict", False, (time.time() - start) * 1000)
            raise UpstreamError(f"Upstream AI request failed: {e}") from e

        duration_ms = (time.time() - start) * 1000
        if not resp.is_success:
            log_external_call("tires_upstream", "predict", False, duration_ms)
            logger.error(f"Upstream AI error: {resp.status_code} {resp.text[:200]}")
            raise UpstreamError(
                f"Upstream status: {resp.status_code}", status_code=resp.status_code
            )

        log_external_call("tires_upstream", "predict", True, duration_ms)
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError("Upstream AI returned a non-JSON body") from e

    async def close(self) -> None:
        await self.client.aclose()
