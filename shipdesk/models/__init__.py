"""ShipDesk — SQLAlchemy models."""
from shipdesk.models.awb import AwbCategory, AwbPoolEntry
from shipdesk.models.order import Order, ShipmentStatusHistory

__all__ = [
    "AwbCategory", "AwbPoolEntry",
    "Order", "ShipmentStatusHistory",
]
