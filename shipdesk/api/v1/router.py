"""ShipDesk — API v1 router aggregation."""
from fastapi import APIRouter

from shipdesk.api.v1.endpoints import (
    awb_pool,
    bulk_status,
    shipments,
)

api_router = APIRouter()

api_router.include_router(awb_pool.router, prefix="/awb-pool", tags=["awb-pool"])
api_router.include_router(shipments.router, prefix="/shipments", tags=["shipments"])
api_router.include_router(bulk_status.router, prefix="/bulk-status", tags=["bulk-status"])
