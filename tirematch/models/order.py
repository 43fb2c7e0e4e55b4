from typing import Optional

from pydantic import BaseModel, ConfigDict


class NoteAttribute(BaseModel):
    name: str
    value: Optional[str] = None


class OrderCustomer(BaseModel):
    model_config = ConfigDict(extra="ignore")

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


class OrderAddress(BaseModel):
    model_config = ConfigDict(extra="ignore")

    address1: Optional[str] = None


class ShopifyOrder(BaseModel):
    """The subset of Shopify's orders/create webhook payload we read."""

    model_config = ConfigDict(extra="ignore")

    id: int | str
    name: Optional[str] = None  # e.g. "#1001"
    note_attributes: list[NoteAttribute] = []
    customer: Optional[OrderCustomer] = None
    shipping_address: Optional[OrderAddress] = None

    def attribute(self, name: str) -> Optional[str]:
        for attr in self.note_attributes:
            if attr.name == name:
                return attr.value
        return None
