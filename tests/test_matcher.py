"""Candidate-to-inventory matching tests."""

from tirematch.models.catalog import CatalogItem
from tirematch.models.recommendation import RecommendationCandidate
from tirematch.services.matcher import find_catalog_match, match


class TestMatch:
    def test_case_insensitive_brand_and_model_substring(self, michelin_item):
        candidate = RecommendationCandidate(brand="michelin", model="defender", match_score=88)

        products = match([candidate], [michelin_item], installation_fee=25.0)

        assert len(products) == 1
        product = products[0]
        assert product.brand == "Michelin"
        assert product.variant_id == "gid://shopify/ProductVariant/101"
        assert product.price_per_unit == 219.99
        assert product.installation_fee_per_unit == 25.0
        assert product.match_score == 88
        assert product.in_stock is True

    def test_no_match_returns_empty_list(self, catalog_items):
        candidate = RecommendationCandidate(brand="Pirelli", model="Scorpion")
        assert match([candidate], catalog_items) == []

    def test_brand_must_match_exactly(self, michelin_item):
        candidate = RecommendationCandidate(brand="Michelin Canada", model="Defender")
        assert match([candidate], [michelin_item]) == []

    def test_out_of_stock_items_are_skipped(self, catalog_items):
        candidate = RecommendationCandidate(brand="Toyo", model="Observe")
        assert find_catalog_match(candidate, catalog_items) is None

    def test_model_matches_sized_title(self, catalog_items):
        candidate = RecommendationCandidate(brand="Bridgestone", model="Blizzak WS90", season="winter")
        products = match([candidate], catalog_items)
        assert [p.size for p in products] == ["205/55R16"]
        assert products[0].season == "winter"

    def test_same_variant_is_returned_once(self, michelin_item):
        candidates = [
            RecommendationCandidate(brand="Michelin", model="Defender"),
            RecommendationCandidate(brand="Michelin", model="Defender LTX"),
        ]
        assert len(match(candidates, [michelin_item])) == 1

    def test_candidate_order_is_kept(self, catalog_items):
        candidates = [
            RecommendationCandidate(brand="Bridgestone", model="Blizzak"),
            RecommendationCandidate(brand="Michelin", model="Defender"),
        ]
        assert [p.brand for p in match(candidates, catalog_items)] == ["Bridgestone", "Michelin"]

    def test_candidate_size_used_when_title_has_none(self):
        item = CatalogItem(id="1", variant_id="11", title="Nokian Hakkapeliitta R5", brand="Nokian",
                           model="Hakkapeliitta R5", available_for_sale=True)
        candidate = RecommendationCandidate(brand="Nokian", model="Hakkapeliitta", size="225/65R17")
        assert match([candidate], [item])[0].size == "225/65R17"
