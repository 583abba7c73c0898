"""ShipDesk — Shipment and bulk job schemas."""
from typing import Any, Literal

from pydantic import BaseModel, Field

from shipdesk.services.order_adapter import ShipmentRecord


class OrderCreate(BaseModel):
    order_key: str = Field(..., min_length=1)
    order_id: str = ""
    courier_type: str = ""
    weight_kg: float | None = Field(default=None, ge=0)
    expected_delivery_date: str = ""
    order: dict[str, Any] = Field(default_factory=dict)


class OrderResponse(BaseModel):
    doc_id: str
    order_key: str
    order_id: str
    store_id: str
    shipment: ShipmentRecord
    created: bool | None = None


class AssignOrdersRequest(BaseModel):
    order_ids: list[str] = Field(default_factory=list)


class AssignOrdersResponse(BaseModel):
    ok: bool
    updated: int
    missing: list[str]


class StatusUpdateRequest(BaseModel):
    doc_id: str = ""
    order_key: str = ""
    shipment_status: str = ""


class StatusUpdateResponse(BaseModel):
    doc_id: str
    shipment_status: str
    updated_at: str


class StatusHistoryResponse(BaseModel):
    changed_at: str
    from_shipment_status: str
    to_shipment_status: str
    event: str
    updated_by: dict[str, Any] | None = None

    model_config = {"from_attributes": True}


class BulkStatusUploadRequest(BaseModel):
    rows: list[dict[str, Any]] = Field(default_factory=list)


class BulkJob(BaseModel):
    """Progress record of a bulk job, polled by job_id."""

    job_id: str
    type: str
    status: Literal["processing", "done", "failed"] = "processing"
    total: int = 0
    processed: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    message: str = ""
    started_at: str = ""
    finished_at: str = ""
    errors: list[str] = Field(default_factory=list)
