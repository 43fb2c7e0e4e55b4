"""End-to-end pipeline tests with faked upstreams."""

import httpx
import pytest

from conftest import make_storefront
from tirematch.core.enums import CatalogSource
from tirematch.services.catalog import CatalogService
from tirematch.services.pipeline import RecommendationPipeline
from tirematch.services.recommender import TireRecommender


def offline_storefront(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    return make_storefront(settings, handler)


class TestRecommendationPipeline:
    @pytest.mark.asyncio()
    async def test_everything_down_still_recommends(self, settings):
        pipeline = RecommendationPipeline(
            CatalogService(offline_storefront(settings)), TireRecommender(None), installation_fee=25.0
        )

        result = await pipeline.run("Winter tires for Quebec City")

        assert result.catalog_source == CatalogSource.FALLBACK
        assert result.used_rule_fallback is True
        assert [p.brand for p in result.recommendations] == [
            "Michelin",
            "Bridgestone",
            "Toyo",
            "Nitto",
        ]
        assert [p.match_score for p in result.recommendations] == [75, 65, 55, 45]

    @pytest.mark.asyncio()
    async def test_unmatched_candidates_give_empty_result(self, settings):
        pipeline = RecommendationPipeline(
            CatalogService(offline_storefront(settings)),
            TireRecommender(lambda prompt: ['[{"brand": "Pirelli", "model": "Scorpion"}]']),
        )

        result = await pipeline.run("anything")

        assert result.recommendations == []
        assert result.used_rule_fallback is False
