"""Recommendation parsing and rule-based fallback tests.

No real LLM is called: the language model is any callable taking a prompt.
"""

import json

import pytest

from tirematch.models.catalog import CatalogItem
from tirematch.models.recommendation import RecommendationCandidate
from tirematch.services.catalog import FALLBACK_INVENTORY
from tirematch.services.recommender import (
    CandidateParseError,
    TireRecommender,
    completion_text,
    extract_json,
    parse_candidates,
    price_range_for,
    rule_based_candidates,
)


def fixed_lm(text):
    """LM stub that returns ``text`` the way dspy.LM does (a list of completions)."""
    calls = []

    def lm(prompt: str):
        calls.append(prompt)
        return [text]

    lm.calls = calls
    return lm


def failing_lm(prompt: str):
    raise RuntimeError("quota exceeded")


# =============================================================================
# Schema boundary
# =============================================================================


class TestExtractJson:
    def test_plain_array(self):
        assert extract_json('[{"brand": "X"}]') == [{"brand": "X"}]

    def test_fenced_array(self):
        text = 'Here you go:\n```json\n[{"brand": "X", "model": "Y"}]\n```'
        assert extract_json(text) == [{"brand": "X", "model": "Y"}]

    def test_no_json(self):
        with pytest.raises(CandidateParseError):
            extract_json("Sorry, I cannot help with that.")

    def test_broken_json_is_not_repaired(self):
        with pytest.raises(CandidateParseError):
            extract_json('[{"brand": "X",}]')


class TestCompletionText:
    def test_list_of_strings(self):
        assert completion_text(["hello"]) == "hello"

    def test_list_of_dicts(self):
        assert completion_text([{"text": "hello"}]) == "hello"

    def test_empty(self):
        assert completion_text([]) == ""
        assert completion_text(None) == ""


class TestParseCandidates:
    def test_defaults_are_filled(self):
        candidates = parse_candidates('[{"brand": "X", "model": "Y"}]')
        assert len(candidates) == 1
        c = candidates[0]
        assert c.brand == "X"
        assert c.model == "Y"
        assert c.season == "all-season"
        assert c.match_score == 75
        assert c.price_range == "$$"
        assert c.features == []

    def test_camel_case_keys(self):
        payload = [
            {
                "brand": "Michelin",
                "model": "X-Ice Snow",
                "season": "winter",
                "priceRange": "$$$",
                "matchScore": 92,
                "features": ["3PMSF"],
            }
        ]
        c = parse_candidates(json.dumps(payload))[0]
        assert c.price_range == "$$$"
        assert c.match_score == 92
        assert c.season == "winter"

    def test_candidates_without_brand_and_model_are_dropped(self):
        payload = [{"size": "205/55R16"}, {"brand": "", "model": ""}, {"model": "Blizzak"}]
        candidates = parse_candidates(json.dumps(payload))
        assert [c.model for c in candidates] == ["Blizzak"]

    def test_invalid_elements_are_dropped_individually(self):
        payload = [{"brand": "X", "matchScore": "very high"}, "junk", {"brand": "Y"}]
        candidates = parse_candidates(json.dumps(payload))
        assert [c.brand for c in candidates] == ["Y"]

    def test_bare_string_features_keep_the_candidate(self):
        c = parse_candidates('[{"brand": "X", "features": "Severe snow rated"}]')[0]
        assert c.features == ["Severe snow rated"]

    @pytest.mark.parametrize(
        "features, expected",
        [
            ([1, None, "3PMSF", {"a": 1}, "  "], ["1", "3PMSF"]),
            ({"grip": "high"}, []),
            (42, []),
        ],
    )
    def test_malformed_features_are_coerced(self, features, expected):
        payload = [{"brand": "Michelin", "model": "X-Ice", "features": features}]
        [c] = parse_candidates(json.dumps(payload))
        assert c.brand == "Michelin"
        assert c.features == expected

    def test_score_is_clamped(self):
        c = parse_candidates('[{"brand": "X", "matchScore": 140}]')[0]
        assert c.match_score == 100

    def test_object_with_recommendations_key(self):
        candidates = parse_candidates('{"recommendations": [{"brand": "X"}]}')
        assert [c.brand for c in candidates] == ["X"]

    def test_object_without_list(self):
        with pytest.raises(CandidateParseError):
            parse_candidates('{"brand": "X"}')


# =============================================================================
# Rule-based fallback
# =============================================================================


def _item(n: int, tags: list[str], price: float = 200.0) -> CatalogItem:
    return CatalogItem(
        id=f"p{n}",
        variant_id=f"v{n}",
        title=f"Brand{n} Model{n}",
        brand=f"Brand{n}",
        model=f"Model{n}",
        tags=tags,
        price=price,
        available_for_sale=True,
    )


class TestRuleBasedCandidates:
    def test_fallback_inventory(self):
        candidates = rule_based_candidates(list(FALLBACK_INVENTORY))
        assert [c.season for c in candidates] == ["winter", "winter", "all-season", "all-season"]
        assert [c.match_score for c in candidates] == [75, 65, 55, 45]
        assert candidates[0].brand == "Michelin"
        assert "tire" not in candidates[0].features

    def test_caps_each_bucket_at_two(self):
        items = [_item(n, ["winter"]) for n in range(5)] + [_item(9, ["all-season"])]
        candidates = rule_based_candidates(items)
        assert len(candidates) == 3

    def test_winter_tag_wins_over_all_season(self):
        items = [_item(1, ["Winter", "all-season"])]
        candidates = rule_based_candidates(items)
        assert len(candidates) == 1
        assert candidates[0].season == "winter"

    def test_untagged_catalog_gives_nothing(self):
        assert rule_based_candidates([_item(1, ["tire"])]) == []

    @pytest.mark.parametrize(
        "price,expected",
        [(99.0, "$"), (150.0, "$$"), (250.0, "$$"), (250.01, "$$$")],
    )
    def test_price_range(self, price, expected):
        assert price_range_for(price) == expected


# =============================================================================
# TireRecommender
# =============================================================================


class TestTireRecommender:
    @pytest.mark.asyncio()
    async def test_valid_llm_output(self, catalog_items):
        lm = fixed_lm('[{"brand": "Michelin", "model": "Defender"}]')
        outcome = await TireRecommender(lm).recommend_detailed("SUV in Montreal", catalog_items)

        assert not outcome.used_fallback
        assert outcome.candidates == [
            RecommendationCandidate(brand="Michelin", model="Defender")
        ]
        assert "SUV in Montreal" in lm.calls[0]
        assert "Michelin Defender LTX" in lm.calls[0]

    @pytest.mark.asyncio()
    async def test_french_prompt_note(self, catalog_items):
        lm = fixed_lm('[{"brand": "Michelin"}]')
        await TireRecommender(lm).recommend("VUS à Québec", catalog_items, lang="fr")
        assert "Canadian French" in lm.calls[0]

    @pytest.mark.asyncio()
    async def test_no_model_uses_fallback(self):
        outcome = await TireRecommender(None).recommend_detailed("anything", list(FALLBACK_INVENTORY))
        assert outcome.used_fallback
        assert outcome.fallback_reason == "llm_unavailable"
        assert len(outcome.candidates) == 4

    @pytest.mark.asyncio()
    async def test_llm_error_uses_fallback(self):
        outcome = await TireRecommender(failing_lm).recommend_detailed(
            "anything", list(FALLBACK_INVENTORY)
        )
        assert outcome.fallback_reason == "llm_error"
        assert len(outcome.candidates) == 4

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("text", ["", "not json at all", "```json\n[{,]\n```"])
    async def test_unparseable_output_uses_fallback(self, text):
        candidates = await TireRecommender(fixed_lm(text)).recommend(
            "anything", list(FALLBACK_INVENTORY)
        )
        assert len(candidates) == 4

    @pytest.mark.asyncio()
    async def test_no_valid_candidates_uses_fallback(self):
        outcome = await TireRecommender(fixed_lm('[{"size": "205/55R16"}]')).recommend_detailed(
            "anything", list(FALLBACK_INVENTORY)
        )
        assert outcome.fallback_reason == "no_valid_candidates"

    @pytest.mark.asyncio()
    async def test_fallback_length_follows_bucket_counts(self):
        items = [_item(1, ["winter"]), _item(2, ["all-season"])]
        candidates = await TireRecommender(failing_lm).recommend("anything", items)
        assert len(candidates) == 2
