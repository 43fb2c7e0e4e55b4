"""Application configuration with environment variable validation."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env relative to the project root (2 levels up from this file)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Shopify Storefront
    shopify_store_domain: str = Field(default="", validation_alias="SHOPIFY_STORE_DOMAIN")
    shopify_storefront_token: str = Field(
        default="", validation_alias="SHOPIFY_STOREFRONT_ACCESS_TOKEN"
    )
    shopify_api_version: str = Field(default="2024-01", validation_alias="SHOPIFY_API_VERSION")
    shopify_installation_variant_id: str = Field(
        default="", validation_alias="SHOPIFY_INSTALLATION_VARIANT_ID"
    )

    # Airtable
    airtable_api_key: str = Field(default="", validation_alias="AIRTABLE_API_KEY")
    airtable_base_id: str = Field(default="", validation_alias="AIRTABLE_BASE_ID")
    airtable_installers_table: str = Field(
        default="Installers", validation_alias="AIRTABLE_INSTALLERS_TABLE"
    )
    airtable_jobs_table: str = Field(default="Jobs", validation_alias="AIRTABLE_JOBS_TABLE")

    # DSPy / LLM
    dspy_model: str = Field(default="gemini/gemini-2.5-flash", validation_alias="DSPY_MODEL")
    gemini_api_key: str = Field(default="", validation_alias="GEMINI_API_KEY")
    llm_max_tokens: int = Field(default=2048, validation_alias="LLM_MAX_TOKENS")
    llm_ready_timeout: float = Field(default=5.0, validation_alias="LLM_READY_TIMEOUT")

    # Pricing / search
    installation_fee_per_tire: float = Field(
        default=25.0, validation_alias="INSTALLATION_FEE_PER_TIRE"
    )
    default_search_radius_km: float = Field(
        default=100.0, validation_alias="DEFAULT_SEARCH_RADIUS_KM"
    )

    # Optional upstream AI proxy for /api/tires
    tires_upstream_url: str = Field(default="", validation_alias="TIRES_UPSTREAM_URL")
    tires_upstream_key: str = Field(default="", validation_alias="TIRES_UPSTREAM_KEY")

    # API settings
    # Comma-separated list
    allowed_origins: str = Field(
        default="https://gcitires.com",
        validation_alias="ALLOWED_ORIGINS",
    )
    rate_limit_requests: int = Field(default=30, validation_alias="RATE_LIMIT_REQUESTS")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @property
    def cors_origins(self) -> list[str]:
        """Parse ALLOWED_ORIGINS from a comma-separated string."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def storefront_api_url(self) -> str:
        return (
            f"https://{self.shopify_store_domain}/api/"
            f"{self.shopify_api_version}/graphql.json"
        )

    @property
    def shopify_configured(self) -> bool:
        return bool(self.shopify_store_domain and self.shopify_storefront_token)

    @property
    def airtable_configured(self) -> bool:
        return bool(self.airtable_api_key and self.airtable_base_id)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


def missing_settings(settings: Settings | None = None) -> list[str]:
    """List integrations that are not configured.

    Nothing here is fatal: the catalog falls back to static inventory,
    checkout falls back to a cart permalink and recommendations fall back
    to rule-based picks. The installer directory is the one feature that
    stops working entirely.
    """
    settings = settings or get_settings()
    missing = []

    if not settings.shopify_store_domain:
        missing.append("SHOPIFY_STORE_DOMAIN is not set")
    if not settings.shopify_storefront_token:
        missing.append("SHOPIFY_STOREFRONT_ACCESS_TOKEN is not set")
    if not settings.airtable_api_key:
        missing.append("AIRTABLE_API_KEY is not set")
    if not settings.airtable_base_id:
        missing.append("AIRTABLE_BASE_ID is not set")

    return missing
