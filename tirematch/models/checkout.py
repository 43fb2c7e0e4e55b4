from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field

from tirematch.models.installer import JobCreate


def _require_numeric_id(value: str) -> str:
    if not any(ch.isdigit() for ch in value):
        raise ValueError(f"Invalid variant ID format: {value}")
    return value


# numeric id or gid://shopify/ProductVariant/<n>
VariantId = Annotated[str, AfterValidator(_require_numeric_id)]


class LineItem(BaseModel):
    variant_id: VariantId
    quantity: int = Field(default=1, ge=1, le=99)


class CheckoutMetadata(BaseModel):
    with_installation: bool = False
    tire_brand: Optional[str] = None
    tire_model: Optional[str] = None
    tire_size: Optional[str] = None
    quantity: Optional[int] = None
    job_reference: Optional[str] = None


class CheckoutResult(BaseModel):
    url: str
    used_fallback: bool = False


class Selection(BaseModel):
    """One in-progress order: a tire, a quantity and the installation choice."""

    variant_id: VariantId
    tire_brand: str
    tire_model: str
    tire_size: Optional[str] = None
    price_per_unit: float = Field(..., ge=0)
    installation_fee_per_unit: float = Field(default=0.0, ge=0)
    quantity: int = Field(default=4, ge=1, le=8)
    with_installation: bool = False

    @property
    def total(self) -> float:
        per_unit = self.price_per_unit
        if self.with_installation:
            per_unit += self.installation_fee_per_unit
        return round(per_unit * self.quantity, 2)


class CheckoutRequest(BaseModel):
    """Body of POST /api/checkout.

    ``booking`` is required to book an installer together with the order;
    without it an installation line is still added but no job is created.
    """

    selection: Selection
    booking: Optional[JobCreate] = None


class CheckoutResponse(BaseModel):
    checkout_url: str
    used_fallback: bool
    total: float
    job_id: Optional[str] = None
    job_reference: Optional[str] = None
