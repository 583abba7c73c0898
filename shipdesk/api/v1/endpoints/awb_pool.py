"""ShipDesk — AWB pool API endpoints."""
from typing import Any

from fastapi import APIRouter, Depends

from shipdesk.api.deps import PERM_AWB_POOL_MANAGE, CurrentUser, DbSession, SessionMaker, require_permission
from shipdesk.schemas.awb_pool import (
    AwbAllocateRequest,
    AwbAllocateResponse,
    AwbCategorySummary,
    AwbPoolUploadRequest,
    AwbPoolUploadResponse,
    AwbReleaseRequest,
    AwbReleaseResponse,
)
from shipdesk.schemas.common import ApiResponse
from shipdesk.services.awb_pool_service import AwbPoolService

router = APIRouter()


@router.post("/upload", response_model=ApiResponse[AwbPoolUploadResponse])
async def upload_awb_pool(
    request: AwbPoolUploadRequest,
    session_maker: SessionMaker,
    current_user: CurrentUser = Depends(require_permission(PERM_AWB_POOL_MANAGE)),
) -> Any:
    """Add AWBs to the pool from parsed sheet rows. Re-uploading never resets assignments."""
    result = await AwbPoolService.upload_pool(session_maker, request.rows, uploaded_by=current_user.as_record())
    return ApiResponse(data=result)


@router.get("/summary", response_model=ApiResponse[dict[str, AwbCategorySummary]])
async def awb_pool_summary(
    db: DbSession,
    current_user: CurrentUser = Depends(require_permission(PERM_AWB_POOL_MANAGE)),
) -> Any:
    """Available and assigned counts per category."""
    return ApiResponse(data=await AwbPoolService.pool_summary(db))


@router.post("/allocate", response_model=ApiResponse[AwbAllocateResponse])
async def allocate_awb(
    request: AwbAllocateRequest,
    session_maker: SessionMaker,
    current_user: CurrentUser = Depends(require_permission(PERM_AWB_POOL_MANAGE)),
) -> Any:
    """Take one unassigned AWB for a courier type. 409 awb_unavailable when the pool is empty."""
    allocation = await AwbPoolService.allocate(
        session_maker,
        courier_type=request.courier_type,
        doc_id=request.doc_id,
        assigned_store_id=request.assigned_store_id,
        order_id=request.order_id,
        request_id=request.request_id,
    )
    return ApiResponse(data=AwbAllocateResponse(awb_number=allocation.awb_number, category=allocation.category))


@router.post("/release", response_model=ApiResponse[AwbReleaseResponse])
async def release_awb(
    request: AwbReleaseRequest,
    session_maker: SessionMaker,
    current_user: CurrentUser = Depends(require_permission(PERM_AWB_POOL_MANAGE)),
) -> Any:
    """Return an AWB to the pool. Safe to repeat."""
    return ApiResponse(data=await AwbPoolService.release(session_maker, request.awb_number, request.doc_id))
