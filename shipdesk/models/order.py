"""ShipDesk — Order and shipment status history models."""
from sqlalchemy import JSON, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shipdesk.db.base import Base


class Order(Base):
    """
    An order with its shipment record embedded as columns.

    ``data`` holds the imported order payload as received, including any
    historical field names; read it through services.order_adapter.
    """

    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_store_status", "store_id", "shipment_status"),
    )

    doc_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    order_key: Mapped[str] = mapped_column(String(255), nullable=False)
    order_id: Mapped[str] = mapped_column(String(100), nullable=False, default="", index=True)
    store_id: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    # Shipment record
    shipment_status: Mapped[str] = mapped_column(String(50), nullable=False, default="New")
    consignment_number: Mapped[str] = mapped_column(String(64), nullable=False, default="", index=True)
    courier_partner: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    courier_type: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    weight_kg: Mapped[float | None] = mapped_column(Float, nullable=True)
    shipping_date: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    expected_delivery_date: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    updated_at: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    event: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    updated_by: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    history: Mapped[list["ShipmentStatusHistory"]] = relationship(
        "ShipmentStatusHistory",
        back_populates="order",
        order_by="ShipmentStatusHistory.id",
    )


class ShipmentStatusHistory(Base):
    """Append-only audit of shipment status transitions. No UPDATE or DELETE."""

    __tablename__ = "shipment_status_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    doc_id: Mapped[str] = mapped_column(String(100), ForeignKey("orders.doc_id", ondelete="CASCADE"), index=True)
    changed_at: Mapped[str] = mapped_column(String(40), nullable=False)
    from_shipment_status: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    to_shipment_status: Mapped[str] = mapped_column(String(50), nullable=False)
    event: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    updated_by: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="history")
