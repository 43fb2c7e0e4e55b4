"""Recommendation pipeline: catalog -> LLM candidates -> inventory match."""

import time

from tirematch.core.logging import logger
from tirematch.models.recommendation import RecommendationResult
from tirematch.services.catalog import CatalogService
from tirematch.services.matcher import match
from tirematch.services.recommender import TireRecommender


class RecommendationPipeline:
    def __init__(
        self,
        catalog: CatalogService,
        recommender: TireRecommender,
        installation_fee: float = 0.0,
    ) -> None:
        self.catalog = catalog
        self.recommender = recommender
        self.installation_fee = installation_fee

    async def run(self, user_text: str, lang: str = "en") -> RecommendationResult:
        start = time.time()

        catalog = await self.catalog.fetch_catalog()
        outcome = await self.recommender.recommend_detailed(user_text, catalog.items, lang)
        products = match(outcome.candidates, catalog.items, self.installation_fee)

        logger.info(
            f"Pipeline: {len(outcome.candidates)} candidates -> {len(products)} products "
            f"(catalog={catalog.source.value}, rule_fallback={outcome.used_fallback}) "
            f"in {(time.time() - start) * 1000:.0f}ms"
        )
        return RecommendationResult(
            recommendations=products,
            catalog_source=catalog.source,
            used_rule_fallback=outcome.used_fallback,
        )
