"""Shopify orders/create webhook: confirm the installation job for an order.

Job reference contract: checkout creates the job with
``JobReference = PENDING-<uuid>`` and writes the same value to the cart
attribute ``_job_reference``. Shopify copies cart attributes into the
order's ``note_attributes``. Orders placed without that attribute fall back
to ``PENDING-<order id>``.
"""

from typing import Any, Optional

from tirematch.core.enums import JOB_REFERENCE_PREFIX
from tirematch.core.logging import logger
from tirematch.models.installer import InstallationJob
from tirematch.models.order import ShopifyOrder
from tirematch.services.installers import InstallerDirectory


def has_installation(order: ShopifyOrder) -> bool:
    return order.attribute("_installation") == "true"


def job_reference_for(order: ShopifyOrder) -> str:
    return order.attribute("_job_reference") or f"{JOB_REFERENCE_PREFIX}{order.id}"


def order_fields(order: ShopifyOrder) -> dict[str, Any]:
    """Airtable job fields copied from the order. Missing values are omitted."""
    customer = order.customer
    fields: dict[str, Any] = {"ShopifyOrderId": order.name or str(order.id)}
    if customer:
        fields["CustomerName"] = customer.full_name or None
        fields["CustomerEmail"] = customer.email
        fields["CustomerPhone"] = customer.phone
    if order.shipping_address:
        fields["CustomerAddress"] = order.shipping_address.address1
    return fields


async def handle_order_created(
    order: ShopifyOrder, directory: InstallerDirectory
) -> Optional[InstallationJob]:
    """Confirm the pending job for ``order``.

    Returns None when the order has no installation. Raises ``JobNotFound``
    when the referenced job does not exist.
    """
    if not has_installation(order):
        logger.info(f"Order {order.id} has no installation, nothing to do")
        return None

    reference = job_reference_for(order)
    job = await directory.find_job_by_reference(reference)
    return await directory.confirm_job(job, order_fields(order))
