"""Prompt for the GCI Tire recommendation model."""

from tirematch.models.catalog import CatalogItem

RECOMMENDATION_PROMPT = """You are the GCI Tire matching assistant. A customer described their vehicle and driving needs. Recommend tires from the store inventory below.

## CUSTOMER REQUEST
{user_request}

## STORE INVENTORY (one product per line)
{inventory}

## RULES
- Prefer tires that appear in the inventory. Use the brand and model names exactly as listed.
- Recommend between 2 and 4 tires, best match first.
- Consider climate, season, vehicle type and budget when the customer mentions them.
- matchScore is a percentage from 0 to 100.

## OUTPUT FORMAT
Return ONLY a JSON array. No markdown, no commentary. Each element:
{{"brand": "...", "model": "...", "size": "...", "season": "winter|all-season|summer|all-weather", "priceRange": "$|$$|$$$", "matchScore": 0-100, "reason": "one short persuasive sentence", "features": ["...", "..."]}}
"""

_LANGUAGE_NOTE = {
    "fr": "\nWrite the \"reason\" and \"features\" values in Canadian French.\n",
}


def summarize_inventory(items: list[CatalogItem]) -> str:
    """One line per product: title, price, stock flag and tags."""
    if not items:
        return "(inventory unavailable)"
    lines = []
    for item in items:
        stock = "in stock" if item.available_for_sale else "out of stock"
        tags = ", ".join(item.tags) if item.tags else "-"
        lines.append(f"- {item.title} | ${item.price:.2f} | {stock} | tags: {tags}")
    return "\n".join(lines)


def build_recommendation_prompt(
    user_request: str, items: list[CatalogItem], lang: str = "en"
) -> str:
    prompt = RECOMMENDATION_PROMPT.format(
        user_request=user_request.strip(),
        inventory=summarize_inventory(items),
    )
    return prompt + _LANGUAGE_NOTE.get(lang, "")
