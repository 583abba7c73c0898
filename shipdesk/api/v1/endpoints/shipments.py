"""ShipDesk — Shipments API endpoints."""
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from shipdesk.api.deps import (
    PERM_SHIPMENTS_ASSIGN,
    PERM_SHIPMENTS_CREATE,
    PERM_SHIPMENTS_READ,
    PERM_SHIPMENTS_UPDATE_STATUS,
    ROLE_ADMIN,
    CurrentUser,
    DbSession,
    SessionMaker,
    require_permission,
)
from shipdesk.core.errors import OrderNotFoundError
from shipdesk.models.order import Order
from shipdesk.schemas.common import ApiResponse
from shipdesk.schemas.shipment import (
    AssignOrdersRequest,
    AssignOrdersResponse,
    OrderCreate,
    OrderResponse,
    StatusHistoryResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from shipdesk.services.audit_service import get_status_history
from shipdesk.services.order_adapter import read_shipment
from shipdesk.services.shipment_service import ShipmentService, to_order_doc_id
from shipdesk.services.shipment_status import StatusBucket

router = APIRouter()


def _order_response(order: Order, created: bool | None = None) -> OrderResponse:
    return OrderResponse(
        doc_id=order.doc_id,
        order_key=order.order_key,
        order_id=order.order_id,
        store_id=order.store_id,
        shipment=read_shipment(order),
        created=created,
    )


def _store_scope(current_user: CurrentUser, store_id: str | None) -> str:
    """Shops only see their own store; admins pick one explicitly."""
    if current_user.role == ROLE_ADMIN:
        return (store_id or "").strip().lower()
    if not current_user.store_id:
        raise HTTPException(status_code=400, detail="store_id_required")
    return current_user.store_id


@router.get("", response_model=ApiResponse[list[OrderResponse]])
async def list_shipments(
    db: DbSession,
    bucket: StatusBucket | None = Query(None),
    store_id: str | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    current_user: CurrentUser = Depends(require_permission(PERM_SHIPMENTS_READ)),
) -> Any:
    """List orders, optionally filtered by status bucket."""
    orders = await ShipmentService.list_orders(
        db, store_id=_store_scope(current_user, store_id), bucket=bucket, limit=limit
    )
    return ApiResponse(data=[_order_response(o) for o in orders], meta={"count": len(orders)})


@router.post("", response_model=ApiResponse[OrderResponse])
async def create_shipment(
    request: OrderCreate,
    session_maker: SessionMaker,
    store_id: str | None = Query(None),
    current_user: CurrentUser = Depends(require_permission(PERM_SHIPMENTS_CREATE)),
) -> Any:
    """Create an order at shipment status New."""
    scope = _store_scope(current_user, store_id)
    if not scope:
        raise HTTPException(status_code=400, detail="store_id_required")
    order, created = await ShipmentService.create_order(
        session_maker,
        request.order_key,
        scope,
        order_id=request.order_id,
        courier_type=request.courier_type,
        weight_kg=request.weight_kg,
        expected_delivery_date=request.expected_delivery_date,
        data=request.order,
        actor=current_user,
    )
    return ApiResponse(data=_order_response(order, created))


@router.post("/assign", response_model=ApiResponse[AssignOrdersResponse])
async def assign_shipments(
    request: AssignOrdersRequest,
    session_maker: SessionMaker,
    store_id: str | None = Query(None),
    current_user: CurrentUser = Depends(require_permission(PERM_SHIPMENTS_ASSIGN)),
) -> Any:
    """Allocate AWBs and move orders to Assigned. Orders that could not be assigned are listed in missing."""
    result = await ShipmentService.assign_orders(
        session_maker, _store_scope(current_user, store_id), request.order_ids, current_user
    )
    return ApiResponse(data=result)


@router.post("/update-status", response_model=ApiResponse[StatusUpdateResponse])
async def update_shipment_status(
    request: StatusUpdateRequest,
    session_maker: SessionMaker,
    current_user: CurrentUser = Depends(require_permission(PERM_SHIPMENTS_UPDATE_STATUS)),
) -> Any:
    """Set an order's shipment status and record the transition."""
    doc_id = request.doc_id.strip() or (to_order_doc_id(request.order_key) if request.order_key.strip() else "")
    if not doc_id:
        raise HTTPException(status_code=400, detail="order_key_required")
    result = await ShipmentService.update_status(session_maker, doc_id, request.shipment_status, current_user)
    return ApiResponse(data=result)


@router.post("/{doc_id}/unassign", response_model=ApiResponse[dict[str, Any]])
async def unassign_shipment(
    doc_id: str,
    session_maker: SessionMaker,
    current_user: CurrentUser = Depends(require_permission(PERM_SHIPMENTS_UPDATE_STATUS)),
) -> Any:
    """Move an order back to New and release its AWB."""
    return ApiResponse(data=await ShipmentService.unassign_order(session_maker, doc_id, current_user))


@router.get("/{doc_id}/history", response_model=ApiResponse[list[StatusHistoryResponse]])
async def shipment_history(
    doc_id: str,
    db: DbSession,
    current_user: CurrentUser = Depends(require_permission(PERM_SHIPMENTS_READ)),
) -> Any:
    """Status transitions of one order, oldest first."""
    if await ShipmentService.get_by_id(db, doc_id) is None:
        raise OrderNotFoundError(doc_id)
    entries = await get_status_history(db, doc_id)
    return ApiResponse(data=[StatusHistoryResponse.model_validate(e) for e in entries])
