"""ShipDesk — AWB pool schemas."""
from typing import Any

from pydantic import BaseModel, Field

from shipdesk.models.awb import AwbCategory


class AwbPoolUploadRequest(BaseModel):
    # Already-parsed sheet rows keyed by header text.
    rows: list[dict[str, Any]] = Field(default_factory=list)


class AwbPoolUploadResponse(BaseModel):
    total: int
    created: int
    updated: int
    skipped: int


class AwbAllocateRequest(BaseModel):
    courier_type: str | None = None
    doc_id: str = Field(..., min_length=1)
    assigned_store_id: str = ""
    order_id: str = ""
    request_id: str = ""


class AwbAllocateResponse(BaseModel):
    awb_number: str
    category: AwbCategory


class AwbReleaseRequest(BaseModel):
    awb_number: str = ""
    doc_id: str = ""


class AwbReleaseResponse(BaseModel):
    ok: bool
    awb_number: str


class AwbCategorySummary(BaseModel):
    total: int
    available: int
    assigned: int
