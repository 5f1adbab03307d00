"""Inventory effects of a sale: stock decrements and device hand-over."""
import logging
from typing import Optional

from medisale.exceptions import NotFoundError
from medisale.models import Stock, MedicalDevice, DeviceStatus

logger = logging.getLogger(__name__)


def decrement_product_stock(session, product_id: int, quantity: int) -> Optional[Stock]:
    """
    Decrement the most recently updated stock row of a product.

    The row is locked FOR UPDATE so concurrent sales of the same product
    serialize. The quantity is floored at zero; availability is checked
    upstream, a shortfall here is only logged.
    """
    stock = session.query(Stock).filter(
        Stock.product_id == product_id
    ).order_by(
        Stock.updated_at.desc(), Stock.id.desc()
    ).with_for_update().first()

    if stock is None:
        logger.warning(f"No stock record for product {product_id}, nothing decremented")
        return None

    if stock.quantity < quantity:
        logger.warning(
            f"Stock shortfall for product {product_id} at location {stock.location_id}: "
            f"on hand {stock.quantity}, sold {quantity}"
        )

    stock.quantity = max(0, stock.quantity - quantity)
    return stock


def mark_device_sold(session, device_id: int, patient_id: Optional[int], company_id: Optional[int]) -> MedicalDevice:
    """Flip a device to SOLD and attach it to the buyer."""
    device = session.get(MedicalDevice, device_id, with_for_update=True)
    if device is None:
        raise NotFoundError('Appareil médical introuvable')

    if device.status is DeviceStatus.SOLD:
        logger.warning(f"Medical device {device_id} was already marked SOLD")

    device.status = DeviceStatus.SOLD
    device.patient_id = patient_id
    device.company_id = company_id
    return device


def apply_inventory_effects(session, sale) -> None:
    """Apply stock and device effects for every item of a flushed sale."""
    for item in sale.items:
        if item.product_id is not None:
            decrement_product_stock(session, item.product_id, item.quantity)
        elif item.medical_device_id is not None:
            mark_device_sold(session, item.medical_device_id, sale.patient_id, sale.company_id)

    session.flush()
