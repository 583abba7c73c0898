"""ShipDesk — Read boundary for order documents.

Orders imported over the years carry the same logical value under several
field names (``shipmentStatus`` / ``shipment_status``, ``consignmentNumber``
/ ``consignment_number`` ...) and status values from older vocabularies.
Everything downstream reads a ShipmentRecord produced here.
"""
from typing import Any

from pydantic import BaseModel

from shipdesk.models.order import Order
from shipdesk.services.row_values import cell_text
from shipdesk.services.shipment_status import display_status

_LEGACY_KEYS: dict[str, tuple[str, ...]] = {
    "shipment_status": ("shipmentStatus", "shipment_status"),
    "consignment_number": ("consignmentNumber", "consignment_number"),
    "courier_partner": ("courierPartner", "courier_partner"),
    "courier_type": ("courierType", "courier_type"),
    "shipping_date": ("shippingDate", "shipping_date"),
    "expected_delivery_date": ("expectedDeliveryDate", "expected_delivery_date"),
    "updated_at": ("updatedAt", "updated_at"),
}


class ShipmentRecord(BaseModel):
    shipment_status: str = ""
    consignment_number: str = ""
    courier_partner: str = ""
    courier_type: str = ""
    weight_kg: float | None = None
    shipping_date: str = ""
    expected_delivery_date: str = ""
    updated_at: str = ""


def _legacy(data: dict[str, Any], field: str) -> str:
    for key in _LEGACY_KEYS[field]:
        value = cell_text(data.get(key))
        if value:
            return value
    return ""


def _field(order: Order, data: dict[str, Any], field: str) -> str:
    return cell_text(getattr(order, field, "")) or _legacy(data, field)


def read_shipment(order: Order) -> ShipmentRecord:
    """Resolve the shipment record: columns first, historical JSON keys as fallback."""
    data = order.data if isinstance(order.data, dict) else {}

    shipping_date = (
        _field(order, data, "shipping_date")
        or cell_text(data.get("requestedAt"))
        or _field(order, data, "updated_at")
    )
    return ShipmentRecord(
        shipment_status=display_status(_field(order, data, "shipment_status")),
        consignment_number=_field(order, data, "consignment_number"),
        courier_partner=_field(order, data, "courier_partner"),
        courier_type=_field(order, data, "courier_type"),
        weight_kg=order.weight_kg,
        shipping_date=shipping_date,
        expected_delivery_date=_field(order, data, "expected_delivery_date"),
        updated_at=_field(order, data, "updated_at"),
    )
