"""Checkout construction against the Shopify cart API.

The caller always gets a URL back. When ``cartCreate`` fails for any reason
the builder returns a cart permalink instead and flags the result.
"""

from typing import Any
from urllib.parse import urlencode

from tirematch.core.enums import CHECKOUT_SOURCE, VARIANT_GID_PREFIX
from tirematch.core.errors import UpstreamError, UpstreamNotConfigured
from tirematch.core.logging import log_fallback, logger
from tirematch.models.checkout import CheckoutMetadata, CheckoutResult, LineItem
from tirematch.services.storefront import StorefrontClient
from tirematch.utils.converters import digits_only

CART_CREATE_MUTATION = """
mutation cartCreate($input: CartInput!) {
  cartCreate(input: $input) {
    cart {
      id
      checkoutUrl
    }
    userErrors {
      field
      message
    }
  }
}
"""


def normalize_variant_id(variant_id: str) -> str:
    """Return the canonical ``gid://shopify/ProductVariant/<n>`` form.

    Examples:
        >>> normalize_variant_id("42")
        'gid://shopify/ProductVariant/42'
        >>> normalize_variant_id("gid://shopify/ProductVariant/42")
        'gid://shopify/ProductVariant/42'
    """
    if variant_id.startswith(VARIANT_GID_PREFIX):
        return variant_id
    numeric_id = digits_only(variant_id)
    if numeric_id:
        return f"{VARIANT_GID_PREFIX}{numeric_id}"
    raise ValueError(f"Invalid variant ID format: {variant_id}")


def build_cart_attributes(metadata: CheckoutMetadata | None) -> list[dict[str, str]]:
    """Custom cart attributes. They become order ``note_attributes``."""
    attributes = [{"key": "_source", "value": CHECKOUT_SOURCE}]
    if metadata is None or not metadata.with_installation:
        return attributes

    attributes.append({"key": "_installation", "value": "true"})
    if metadata.tire_brand:
        attributes.append({"key": "_tire_brand", "value": metadata.tire_brand})
    if metadata.tire_model:
        attributes.append({"key": "_tire_model", "value": metadata.tire_model})
    if metadata.job_reference:
        attributes.append({"key": "_job_reference", "value": metadata.job_reference})
    return attributes


def build_cart_permalink(domain: str, line_items: list[LineItem]) -> str:
    """Deterministic cart URL that needs no API call.

    Example: https://shop.example.com/cart/111:4,222:4?ref=ai_match_v2
    """
    cart_items = ",".join(
        f"{digits_only(item.variant_id.split('/')[-1])}:{item.quantity}"
        for item in line_items
    )
    query = urlencode({"ref": CHECKOUT_SOURCE})
    return f"https://{domain}/cart/{cart_items}?{query}"


class CheckoutBuilder:
    """Turns selected line items into a checkout URL."""

    def __init__(self, storefront: StorefrontClient) -> None:
        self.storefront = storefront

    async def build_checkout(
        self,
        line_items: list[LineItem],
        metadata: CheckoutMetadata | None = None,
    ) -> CheckoutResult:
        """Create a cart and return its checkout URL, or the permalink fallback.

        Raises:
            UpstreamNotConfigured: no store domain, so not even a permalink
                can be built.
        """
        if not self.storefront.domain:
            raise UpstreamNotConfigured("Shopify store domain is not configured")

        try:
            url = await self._create_cart(line_items, metadata)
            logger.info(f"Checkout created with {len(line_items)} line items")
            return CheckoutResult(url=url)
        except (UpstreamError, ValueError) as e:
            log_fallback("checkout", type(e).__name__, error=e)
            return CheckoutResult(
                url=build_cart_permalink(self.storefront.domain, line_items),
                used_fallback=True,
            )

    async def _create_cart(
        self, line_items: list[LineItem], metadata: CheckoutMetadata | None
    ) -> str:
        variables: dict[str, Any] = {
            "input": {
                "lines": [
                    {
                        "merchandiseId": normalize_variant_id(item.variant_id),
                        "quantity": item.quantity,
                    }
                    for item in line_items
                ],
                "attributes": build_cart_attributes(metadata),
            }
        }

        data = await self.storefront.execute(
            CART_CREATE_MUTATION, variables, operation="cartCreate"
        )
        result = data.get("cartCreate") or {}

        user_errors = result.get("userErrors") or []
        if user_errors:
            messages = ", ".join(str(e.get("message")) for e in user_errors)
            raise UpstreamError(f"Cart user errors: {messages}")

        checkout_url = (result.get("cart") or {}).get("checkoutUrl")
        if not checkout_url:
            raise UpstreamError("No checkout URL returned from Shopify")
        return str(checkout_url)
