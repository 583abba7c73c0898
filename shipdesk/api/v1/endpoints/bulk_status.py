"""ShipDesk — Bulk status upload endpoints."""
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, status

from shipdesk.api.deps import PERM_SHIPMENTS_UPDATE_STATUS, CurrentUser, Jobs, SessionMaker, require_permission
from shipdesk.core.errors import JobNotFoundError
from shipdesk.schemas.common import ApiResponse
from shipdesk.schemas.shipment import BulkJob, BulkStatusUploadRequest
from shipdesk.services.bulk_status_service import JOB_TYPE_BULK_STATUS, BulkStatusService, validate_rows

router = APIRouter()


@router.post("/upload", status_code=status.HTTP_202_ACCEPTED, response_model=ApiResponse[dict[str, Any]])
async def upload_bulk_status(
    request: BulkStatusUploadRequest,
    background_tasks: BackgroundTasks,
    session_maker: SessionMaker,
    job_store: Jobs,
    current_user: CurrentUser = Depends(require_permission(PERM_SHIPMENTS_UPDATE_STATUS)),
) -> Any:
    """Queue status updates by tracking number. Returns job_id for polling."""
    validate_rows(request.rows)
    job = await job_store.create(JOB_TYPE_BULK_STATUS, total=len(request.rows))
    background_tasks.add_task(
        BulkStatusService.run_job, session_maker, job_store, job.job_id, request.rows, current_user
    )
    return ApiResponse(data={"job_id": job.job_id, "total": job.total})


@router.get("/jobs/{job_id}", response_model=ApiResponse[BulkJob])
async def get_bulk_job(
    job_id: str,
    job_store: Jobs,
    current_user: CurrentUser = Depends(require_permission(PERM_SHIPMENTS_UPDATE_STATUS)),
) -> Any:
    """Poll bulk job progress."""
    job = await job_store.get(job_id.strip())
    if job is None:
        raise JobNotFoundError(f"Job {job_id} not found")
    return ApiResponse(data=job)
