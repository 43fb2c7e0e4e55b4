"""Join AI candidates against real inventory."""

from tirematch.core.logging import logger
from tirematch.models.catalog import CatalogItem, TireProduct
from tirematch.models.recommendation import RecommendationCandidate


def find_catalog_match(
    candidate: RecommendationCandidate, items: list[CatalogItem]
) -> CatalogItem | None:
    """First sellable item with the same brand whose title contains the model.

    Brand compares case-insensitively for equality; model is a
    case-insensitive substring of the product title.
    """
    brand = candidate.brand.strip().lower()
    model = candidate.model.strip().lower()

    for item in items:
        if not item.available_for_sale:
            continue
        if item.brand.strip().lower() != brand:
            continue
        if model in item.title.lower():
            return item
    return None


def to_tire_product(
    item: CatalogItem, candidate: RecommendationCandidate, installation_fee: float
) -> TireProduct:
    return TireProduct(
        id=item.id,
        variant_id=item.variant_id,
        brand=item.brand,
        model=item.model,
        title=item.title,
        size=item.size or candidate.size,
        season=candidate.season,
        price_per_unit=item.price,
        installation_fee_per_unit=installation_fee,
        image_url=item.image_url,
        match_score=candidate.match_score,
        features=candidate.features,
        reason=candidate.reason,
        in_stock=item.available_for_sale,
    )


def match(
    candidates: list[RecommendationCandidate],
    items: list[CatalogItem],
    installation_fee: float = 0.0,
) -> list[TireProduct]:
    """Keep candidates that resolve to a sellable catalog item.

    Unmatched candidates are dropped. A variant is returned at most once.
    The result can be empty.
    """
    products: list[TireProduct] = []
    seen_variants: set[str] = set()

    for candidate in candidates:
        item = find_catalog_match(candidate, items)
        if item is None:
            logger.info(
                f"No inventory match for candidate brand={candidate.brand!r} "
                f"model={candidate.model!r}"
            )
            continue
        key = item.variant_id or item.id
        if key in seen_variants:
            logger.debug(f"Skipping duplicate match for {item.title!r}")
            continue
        seen_variants.add(key)
        products.append(to_tire_product(item, candidate, installation_fee))

    return products
