"""LLM tire recommendations with a rule-based fallback.

Flow:
1. Build one prompt from the customer's text and a catalog summary.
2. Send it to the language model (``dspy.LM``) in a worker thread.
3. Extract the JSON payload once and validate every element against
   ``RecommendationCandidate``.
4. Anything that does not yield at least one valid candidate falls back to
   deterministic picks from the catalog. ``recommend`` never raises.
"""

import asyncio
import json
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import dspy
from pydantic import ValidationError

from tirematch.core.config import Settings
from tirematch.core.enums import (
    FALLBACK_PICKS_PER_BUCKET,
    FALLBACK_SCORE_STEP,
    FALLBACK_START_SCORE,
    Season,
)
from tirematch.core.logging import log_external_call, log_fallback, logger
from tirematch.models.catalog import CatalogItem
from tirematch.models.recommendation import RecommendationCandidate
from tirematch.prompts.recommendation import build_recommendation_prompt

# Anything callable as ``lm(prompt)``; dspy.LM returns a list of completions
LanguageModel = Callable[[str], Any]

_CODE_FENCE = re.compile(r"```(?:json|JSON)?")
_JSON_PAYLOAD = re.compile(r"(\[[\s\S]*\]|\{[\s\S]*\})")


class CandidateParseError(ValueError):
    """The model output does not contain a JSON list of candidates."""


@dataclass
class RecommendationOutcome:
    candidates: list[RecommendationCandidate] = field(default_factory=list)
    used_fallback: bool = False
    fallback_reason: str | None = None


def build_language_model(settings: Settings) -> dspy.LM:
    """Create the LM from settings (provider/model string, e.g. gemini/gemini-2.5-flash)."""
    kwargs: dict[str, Any] = {"max_tokens": settings.llm_max_tokens}
    if settings.gemini_api_key:
        kwargs["api_key"] = settings.gemini_api_key
    return dspy.LM(settings.dspy_model, **kwargs)


def completion_text(output: Any) -> str:
    """Normalize an LM return value to text.

    dspy.LM returns a list of completions, each a string or a dict with a
    ``text`` key. Plain strings are accepted as-is.
    """
    if isinstance(output, list):
        if not output:
            return ""
        output = output[0]
    if isinstance(output, dict):
        return str(output.get("text") or "")
    return "" if output is None else str(output)


def extract_json(text: str) -> Any:
    """Strip code fences, take the outermost JSON array/object, parse it once."""
    stripped = _CODE_FENCE.sub("", text).strip()
    match = _JSON_PAYLOAD.search(stripped)
    if not match:
        raise CandidateParseError("no JSON payload in model output")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise CandidateParseError(f"invalid JSON in model output: {e.msg}") from e


def parse_candidates(text: str) -> list[RecommendationCandidate]:
    """Validate model output against the candidate schema.

    The payload must be a list, or an object with a ``recommendations``
    list. Elements that fail validation are dropped individually.
    """
    data = extract_json(text)
    if isinstance(data, dict):
        data = data.get("recommendations")
    if not isinstance(data, list):
        raise CandidateParseError("model output is not a list of candidates")

    candidates: list[RecommendationCandidate] = []
    for index, raw in enumerate(data):
        if not isinstance(raw, dict):
            logger.info(f"Dropping candidate #{index}: not an object")
            continue
        try:
            candidates.append(RecommendationCandidate.model_validate(raw))
        except ValidationError as e:
            logger.info(f"Dropping candidate #{index}: {e.error_count()} validation error(s)")
    return candidates


def price_range_for(price: float) -> str:
    if price < 150:
        return "$"
    if price <= 250:
        return "$$"
    return "$$$"


def rule_based_candidates(items: list[CatalogItem]) -> list[RecommendationCandidate]:
    """Deterministic picks: up to 2 winter items, then up to 2 all-season items.

    An item tagged winter is never counted as all-season. Scores start at 75
    and drop by 10 per pick.
    """
    winter = [i for i in items if i.has_tag_containing(Season.WINTER.value)]
    all_season = [
        i
        for i in items
        if not i.has_tag_containing(Season.WINTER.value)
        and i.has_tag_containing(Season.ALL_SEASON.value)
    ]
    picks = [(i, Season.WINTER) for i in winter[:FALLBACK_PICKS_PER_BUCKET]] + [
        (i, Season.ALL_SEASON) for i in all_season[:FALLBACK_PICKS_PER_BUCKET]
    ]

    return [
        RecommendationCandidate(
            brand=item.brand,
            model=item.model,
            size=item.size,
            season=season.value,
            price_range=price_range_for(item.price),
            match_score=FALLBACK_START_SCORE - n * FALLBACK_SCORE_STEP,
            reason=f"Popular {season.value} choice from our current inventory.",
            features=[t for t in item.tags if t.lower() != "tire"][:3],
        )
        for n, (item, season) in enumerate(picks)
    ]


class TireRecommender:
    """Asks the language model for candidates; degrades to catalog picks."""

    def __init__(self, lm: LanguageModel | None = None) -> None:
        self.lm = lm

    async def recommend(
        self, user_text: str, items: list[CatalogItem], lang: str = "en"
    ) -> list[RecommendationCandidate]:
        outcome = await self.recommend_detailed(user_text, items, lang)
        return outcome.candidates

    async def recommend_detailed(
        self, user_text: str, items: list[CatalogItem], lang: str = "en"
    ) -> RecommendationOutcome:
        if self.lm is None:
            return self._fallback(items, "llm_unavailable")

        prompt = build_recommendation_prompt(user_text, items, lang)
        start = time.time()
        try:
            output = await asyncio.to_thread(self.lm, prompt)
        except Exception as e:
            log_external_call("llm", "recommend", False, (time.time() - start) * 1000)
            return self._fallback(items, "llm_error", error=e)
        log_external_call("llm", "recommend", True, (time.time() - start) * 1000)

        try:
            candidates = parse_candidates(completion_text(output))
        except CandidateParseError as e:
            return self._fallback(items, "unparseable_output", error=e)

        if not candidates:
            return self._fallback(items, "no_valid_candidates")

        logger.info(f"LLM returned {len(candidates)} valid candidates")
        return RecommendationOutcome(candidates=candidates)

    @staticmethod
    def _fallback(
        items: list[CatalogItem], reason: str, error: Exception | None = None
    ) -> RecommendationOutcome:
        log_fallback("recommender", reason, error=error or "-")
        return RecommendationOutcome(
            candidates=rule_based_candidates(items),
            used_fallback=True,
            fallback_reason=reason,
        )
