from typing import Optional

from pydantic import BaseModel, Field

from tirematch.core.enums import CatalogSource


class CatalogItem(BaseModel):
    """A purchasable tire listing from the Shopify catalog (first variant)."""

    id: str
    variant_id: str = ""
    title: str
    brand: str  # first whitespace token of the title
    model: str = ""  # remainder of the title
    size: str = ""  # e.g. "265/70R17", empty when the title has none
    product_type: str = ""
    tags: list[str] = []
    description: str = ""
    price: float = 0.0
    currency_code: str = "CAD"
    image_url: str = ""
    available_for_sale: bool = False

    def has_tag_containing(self, needle: str) -> bool:
        needle = needle.lower()
        return any(needle in tag.lower() for tag in self.tags)


class CatalogResult(BaseModel):
    """Catalog listing tagged with where it came from."""

    items: list[CatalogItem]
    source: CatalogSource
    reason: Optional[str] = None  # set when source is "fallback"

    @property
    def is_fallback(self) -> bool:
        return self.source == CatalogSource.FALLBACK


class TireProduct(BaseModel):
    """A catalog item merged with the AI annotations that selected it."""

    id: str
    variant_id: str
    brand: str
    model: str
    title: str = ""
    size: str = ""
    season: str = "all-season"
    price_per_unit: float
    installation_fee_per_unit: float
    stock_count: Optional[int] = None
    image_url: str = ""
    match_score: int = Field(ge=0, le=100)
    features: list[str] = []
    reason: str = ""
    in_stock: bool = True
