"""ShipDesk — Shipment status audit trail."""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shipdesk.models.order import ShipmentStatusHistory
from shipdesk.schemas.common import Actor

logger = logging.getLogger(__name__)

# ── Event names stored on orders and history rows ───────────────────────────
EVENT_ORDER_CREATED = "order_created"
EVENT_MANUAL_ASSIGN = "manual_assign"
EVENT_UNASSIGN = "unassign"
EVENT_STATUS_UPDATE = "status_update"
EVENT_BULK_STATUS = "bulk_status_csv"


def record_status_change(
    db: AsyncSession,
    doc_id: str,
    from_status: str,
    to_status: str,
    actor: Actor | None,
    changed_at: str,
    event: str = EVENT_STATUS_UPDATE,
) -> ShipmentStatusHistory:
    """
    Append one history row to the caller's transaction.

    Not flushed here. The row commits or rolls back with the order update
    it describes.
    """
    entry = ShipmentStatusHistory(
        doc_id=doc_id,
        changed_at=changed_at,
        from_shipment_status=from_status,
        to_shipment_status=to_status,
        event=event,
        updated_by=(actor or Actor()).as_record(),
    )
    db.add(entry)
    logger.info("Shipment %s: %r -> %r (%s)", doc_id, from_status, to_status, event)
    return entry


async def get_status_history(db: AsyncSession, doc_id: str) -> list[ShipmentStatusHistory]:
    result = await db.execute(
        select(ShipmentStatusHistory)
        .where(ShipmentStatusHistory.doc_id == doc_id)
        .order_by(ShipmentStatusHistory.id)
    )
    return list(result.scalars().all())
