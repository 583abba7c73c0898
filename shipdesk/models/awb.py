"""ShipDesk — AWB pool model."""
from enum import Enum

from sqlalchemy import JSON, Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from shipdesk.db.base import Base


class AwbCategory(str, Enum):
    Z_EXPRESS = "z_express"
    D_PREPAID = "d_prepaid"
    D_COD = "d_cod"


class AwbPoolEntry(Base):
    """One AWB in the inventory. Soft-managed: assigned and released, never deleted."""

    __tablename__ = "awb_pool"
    __table_args__ = (Index("ix_awb_pool_category_assigned", "category", "assigned"),)

    awb_number: Mapped[str] = mapped_column(String(64), primary_key=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    assigned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Timestamps are ISO-8601 strings; "" means not applicable.
    assigned_at: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    released_at: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    assigned_doc_id: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    assigned_store_id: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    order_id: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    request_id: Mapped[str] = mapped_column(String(100), nullable=False, default="", index=True)
    released_by_doc_id: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    created_at: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    updated_at: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    last_uploaded_at: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    last_uploaded_by: Mapped[dict | None] = mapped_column(JSON, nullable=True)
