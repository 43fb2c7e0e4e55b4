"""FastAPI dependency injection for services."""

import asyncio
from typing import Annotated

from fastapi import Depends, Request

from tirematch.core.config import Settings, get_settings
from tirematch.core.logging import log_fallback
from tirematch.core.readiness import ReadinessGate
from tirematch.services.airtable import AirtableClient
from tirematch.services.catalog import CatalogService
from tirematch.services.checkout import CheckoutBuilder
from tirematch.services.installers import InstallerDirectory
from tirematch.services.pipeline import RecommendationPipeline
from tirematch.services.recommender import LanguageModel, TireRecommender
from tirematch.services.storefront import StorefrontClient
from tirematch.services.tires_proxy import TiresProxy

# -----------------------------------------------------------------------------
# Shared HTTP clients
# -----------------------------------------------------------------------------

_storefront: StorefrontClient | None = None
_airtable: AirtableClient | None = None
_tires_proxy: TiresProxy | None = None


def get_storefront(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StorefrontClient:
    global _storefront
    if _storefront is None:
        _storefront = StorefrontClient(settings)
    return _storefront


def get_airtable(
    settings: Annotated[Settings, Depends(get_settings)],
) -> AirtableClient:
    global _airtable
    if _airtable is None:
        _airtable = AirtableClient(settings)
    return _airtable


def get_tires_proxy(
    settings: Annotated[Settings, Depends(get_settings)],
) -> TiresProxy:
    global _tires_proxy
    if _tires_proxy is None:
        _tires_proxy = TiresProxy(settings)
    return _tires_proxy


async def close_clients() -> None:
    """Close every shared client that was created."""
    global _storefront, _airtable, _tires_proxy
    for client in (_storefront, _airtable, _tires_proxy):
        if client is not None:
            await client.close()
    _storefront = _airtable = _tires_proxy = None


# -----------------------------------------------------------------------------
# Services
# -----------------------------------------------------------------------------


def get_catalog_service(
    storefront: Annotated[StorefrontClient, Depends(get_storefront)],
) -> CatalogService:
    return CatalogService(storefront)


def get_checkout_builder(
    storefront: Annotated[StorefrontClient, Depends(get_storefront)],
) -> CheckoutBuilder:
    return CheckoutBuilder(storefront)


def get_installer_directory(
    airtable: Annotated[AirtableClient, Depends(get_airtable)],
) -> InstallerDirectory:
    return InstallerDirectory(airtable)


async def get_language_model(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> LanguageModel | None:
    """The configured LM, or None when it is not ready in time.

    None makes the recommender use its rule-based picks.
    """
    gate: ReadinessGate[LanguageModel] | None = getattr(request.app.state, "llm_gate", None)
    if gate is None:
        return None
    try:
        return await gate.wait(settings.llm_ready_timeout)
    except asyncio.TimeoutError:
        log_fallback("llm", "not_ready", timeout_s=settings.llm_ready_timeout)
    except Exception as e:
        log_fallback("llm", "init_failed", error=e)
    return None


async def get_pipeline(
    request: Request,
    catalog: Annotated[CatalogService, Depends(get_catalog_service)],
    proxy: Annotated[TiresProxy, Depends(get_tires_proxy)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RecommendationPipeline | None:
    """The inline recommendation pipeline, or None when requests are proxied.

    The LM gate is only awaited on the inline path.
    """
    if proxy.enabled:
        return None
    lm = await get_language_model(request, settings)
    return RecommendationPipeline(
        catalog,
        TireRecommender(lm),
        installation_fee=settings.installation_fee_per_tire,
    )
