"""Shared fixtures: settings and fake upstream transports."""

import json
from collections.abc import Callable

import httpx
import pytest

from tirematch.core.config import Settings
from tirematch.models.catalog import CatalogItem
from tirematch.services.airtable import AirtableClient
from tirematch.services.storefront import StorefrontClient

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        shopify_store_domain="gci-test.myshopify.com",
        shopify_storefront_token="storefront-token",
        shopify_installation_variant_id="999",
        airtable_api_key="airtable-key",
        airtable_base_id="appTEST",
        gemini_api_key="",
        installation_fee_per_tire=25.0,
    )


@pytest.fixture
def unconfigured_settings() -> Settings:
    return Settings(
        shopify_store_domain="",
        shopify_storefront_token="",
        airtable_api_key="",
        airtable_base_id="",
    )


def make_storefront(settings: Settings, handler: Handler) -> StorefrontClient:
    return StorefrontClient(settings, httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def make_airtable(settings: Settings, handler: Handler) -> AirtableClient:
    return AirtableClient(settings, httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def graphql_response(data: dict) -> httpx.Response:
    return httpx.Response(200, json={"data": data})


def request_json(request: httpx.Request) -> dict:
    return json.loads(request.content)


@pytest.fixture
def michelin_item() -> CatalogItem:
    return CatalogItem(
        id="gid://shopify/Product/1",
        variant_id="gid://shopify/ProductVariant/101",
        title="Michelin Defender LTX",
        brand="Michelin",
        model="Defender LTX",
        tags=["tire", "all-season"],
        price=219.99,
        available_for_sale=True,
    )


@pytest.fixture
def catalog_items(michelin_item) -> list[CatalogItem]:
    return [
        michelin_item,
        CatalogItem(
            id="gid://shopify/Product/2",
            variant_id="gid://shopify/ProductVariant/102",
            title="Bridgestone Blizzak WS90 205/55R16",
            brand="Bridgestone",
            model="Blizzak WS90 205/55R16",
            size="205/55R16",
            tags=["tire", "winter"],
            price=189.0,
            available_for_sale=True,
        ),
        CatalogItem(
            id="gid://shopify/Product/3",
            variant_id="gid://shopify/ProductVariant/103",
            title="Toyo Observe GSi-6",
            brand="Toyo",
            model="Observe GSi-6",
            tags=["tire", "winter"],
            price=165.0,
            available_for_sale=False,
        ),
    ]
