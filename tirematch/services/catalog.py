"""Tire catalog from the Shopify storefront.

Reads fall back to a small built-in inventory by default. Every result is
tagged with its source so a fallback is never mistaken for live data.
"""

import re
from typing import Any

from tirematch.core.enums import (
    CATALOG_PAGE_SIZE,
    CATALOG_QUERY,
    CatalogSource,
    FailurePolicy,
)
from tirematch.core.errors import CatalogUnavailable, UpstreamError
from tirematch.core.logging import log_fallback, logger
from tirematch.models.catalog import CatalogItem, CatalogResult
from tirematch.services.storefront import StorefrontClient
from tirematch.utils.converters import safe_float

PRODUCTS_QUERY = """
query GetTireProducts($first: Int!, $query: String!) {
  products(first: $first, query: $query) {
    edges {
      node {
        id
        title
        handle
        description
        productType
        tags
        images(first: 1) {
          edges { node { url altText } }
        }
        variants(first: 10) {
          edges {
            node {
              id
              title
              price { amount currencyCode }
              availableForSale
            }
          }
        }
      }
    }
  }
}
"""

# Tire size pattern in product titles, e.g. "265/70R17"
_SIZE_PATTERN = re.compile(r"\d{3}/\d{2}R\d{2}")

FALLBACK_INVENTORY: tuple[CatalogItem, ...] = (
    CatalogItem(
        id="gci-001",
        variant_id="mock-1",
        title="Toyo Open Country A/T III",
        brand="Toyo",
        model="Open Country A/T III",
        product_type="Tire",
        tags=["tire", "all-season", "all-terrain"],
        description="Latest generation grippy all-terrain tire.",
        price=245.0,
        available_for_sale=True,
    ),
    CatalogItem(
        id="gci-002",
        variant_id="mock-2",
        title="Nitto Ridge Grappler V2",
        brand="Nitto",
        model="Ridge Grappler V2",
        product_type="Tire",
        tags=["tire", "all-season", "hybrid-terrain"],
        description="Balance between mud aggression and comfort.",
        price=310.0,
        available_for_sale=True,
    ),
    CatalogItem(
        id="gci-003",
        variant_id="mock-3",
        title="Michelin X-Ice Snow",
        brand="Michelin",
        model="X-Ice Snow",
        product_type="Tire",
        tags=["tire", "winter", "3pmsf"],
        description="Studless winter tire with long tread life.",
        price=228.0,
        available_for_sale=True,
    ),
    CatalogItem(
        id="gci-004",
        variant_id="mock-4",
        title="Bridgestone Blizzak WS90",
        brand="Bridgestone",
        model="Blizzak WS90",
        product_type="Tire",
        tags=["tire", "winter", "3pmsf"],
        description="Ice braking and snow traction for passenger cars.",
        price=199.0,
        available_for_sale=True,
    ),
)


def parse_product_title(title: str) -> tuple[str, str, str]:
    """Split a product title into (brand, model, size).

    Example: "Toyo Open Country A/T III 265/70R17"
        -> ("Toyo", "Open Country A/T III 265/70R17", "265/70R17")

    The model is everything after the first token, size included, so that
    substring matching against the model name keeps working on sized titles.
    """
    parts = title.split()
    brand = parts[0] if parts else "Unknown"
    model = " ".join(parts[1:])
    size_match = _SIZE_PATTERN.search(title)
    return brand, model, size_match.group(0) if size_match else ""


def product_to_item(node: dict[str, Any]) -> CatalogItem:
    """Map a Storefront product node onto a CatalogItem (first variant, first image)."""
    title = str(node.get("title") or "")
    brand, model, size = parse_product_title(title)

    variant_edges = (node.get("variants") or {}).get("edges") or []
    variant = variant_edges[0]["node"] if variant_edges else {}
    price = variant.get("price") or {}

    image_edges = (node.get("images") or {}).get("edges") or []
    image = image_edges[0]["node"] if image_edges else {}

    return CatalogItem(
        id=str(node.get("id") or ""),
        variant_id=str(variant.get("id") or ""),
        title=title,
        brand=brand,
        model=model,
        size=size,
        product_type=str(node.get("productType") or ""),
        tags=[str(t) for t in node.get("tags") or []],
        description=str(node.get("description") or ""),
        price=safe_float(price.get("amount")),
        currency_code=str(price.get("currencyCode") or "CAD"),
        image_url=str(image.get("url") or ""),
        available_for_sale=bool(variant.get("availableForSale", False)),
    )


class CatalogService:
    """Fetches the tire catalog, one page of up to 50 products."""

    def __init__(self, storefront: StorefrontClient) -> None:
        self.storefront = storefront

    async def fetch_catalog(
        self, policy: FailurePolicy = FailurePolicy.FALLBACK
    ) -> CatalogResult:
        """Fetch tire products.

        With ``FailurePolicy.FALLBACK`` any failure, and an empty catalog,
        yield the static inventory tagged ``source=fallback``. With
        ``FailurePolicy.PROPAGATE`` failures raise ``CatalogUnavailable`` and
        an empty catalog is returned as-is.
        """
        try:
            data = await self.storefront.execute(
                PRODUCTS_QUERY,
                {"first": CATALOG_PAGE_SIZE, "query": CATALOG_QUERY},
                operation="products",
            )
            edges = ((data.get("products") or {}).get("edges")) or []
            items = [product_to_item(edge["node"]) for edge in edges if edge.get("node")]
        except UpstreamError as e:
            return self._degrade(policy, reason=type(e).__name__, error=e)
        except (KeyError, TypeError, ValueError) as e:
            return self._degrade(policy, reason="malformed_response", error=e)

        # An empty live catalog is only an error when falling back
        if not items and policy == FailurePolicy.FALLBACK:
            return self._degrade(policy, reason="empty_catalog")

        logger.info(f"Catalog loaded: {len(items)} products")
        return CatalogResult(items=items, source=CatalogSource.LIVE)

    @staticmethod
    def _degrade(
        policy: FailurePolicy, reason: str, error: Exception | None = None
    ) -> CatalogResult:
        if policy == FailurePolicy.PROPAGATE:
            raise CatalogUnavailable(f"Catalog unavailable: {reason}") from error
        log_fallback("catalog", reason, error=error or "-")
        return CatalogResult(
            items=list(FALLBACK_INVENTORY),
            source=CatalogSource.FALLBACK,
            reason=reason,
        )
