from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from tirematch.core.enums import (
    DEFAULT_MATCH_SCORE,
    DEFAULT_PRICE_RANGE,
    DEFAULT_SEASON,
    CatalogSource,
)
from tirematch.models.catalog import TireProduct


class RecommendationCandidate(BaseModel):
    """An AI-suggested tire, before it is matched against inventory.

    Accepts the camelCase keys the model is prompted to return.
    """

    brand: str = ""
    model: str = ""
    size: str = ""
    season: str = DEFAULT_SEASON
    price_range: str = Field(
        default=DEFAULT_PRICE_RANGE,
        validation_alias=AliasChoices("price_range", "priceRange"),
    )
    match_score: int = Field(
        default=DEFAULT_MATCH_SCORE,
        validation_alias=AliasChoices("match_score", "matchScore"),
    )
    reason: str = ""
    features: list[str] = []

    @field_validator("brand", "model", "size", "reason", mode="before")
    @classmethod
    def none_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("season", mode="before")
    @classmethod
    def blank_season_to_default(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_SEASON
        return value

    @field_validator("price_range", mode="before")
    @classmethod
    def blank_price_range_to_default(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_PRICE_RANGE
        return value

    @field_validator("match_score", mode="before")
    @classmethod
    def coerce_score(cls, value: object) -> object:
        if value is None or value == "":
            return DEFAULT_MATCH_SCORE
        if isinstance(value, float):
            return round(value)
        return value

    @field_validator("match_score")
    @classmethod
    def clamp_score(cls, value: int) -> int:
        """matchScore is a percentage."""
        return max(0, min(100, value))

    @field_validator("features", mode="before")
    @classmethod
    def coerce_features(cls, value: object) -> list[str]:
        """A bare string becomes one feature; non-scalar entries are dropped."""
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            return []
        return [
            str(f).strip()
            for f in value
            if isinstance(f, (str, int, float)) and str(f).strip()
        ]

    @model_validator(mode="after")
    def require_brand_or_model(self) -> "RecommendationCandidate":
        if not self.brand.strip() and not self.model.strip():
            raise ValueError("candidate has neither brand nor model")
        return self


class RecommendationRequest(BaseModel):
    """Body of POST /api/tires."""

    # Accept both "query" and "request" field names
    query: Optional[str] = Field(default=None, max_length=2000)
    request: Optional[str] = Field(default=None, max_length=2000)
    lang: str = "en"

    @property
    def user_text(self) -> str:
        text = (self.query or self.request or "").strip()
        if not text:
            raise ValueError("Either 'query' or 'request' must be provided")
        return text


class RecommendationResult(BaseModel):
    recommendations: list[TireProduct]
    catalog_source: CatalogSource
    used_rule_fallback: bool = False
