"""ShipDesk — ShipmentService: order creation, AWB assignment, status updates."""
import hashlib
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shipdesk.config import get_settings
from shipdesk.core.errors import (
    AwbUnavailableError,
    InvalidShipmentStatusError,
    OrderKeysLimitError,
    OrderNotFoundError,
)
from shipdesk.db.transaction import run_transaction
from shipdesk.models.order import Order
from shipdesk.schemas.common import Actor
from shipdesk.services.audit_service import (
    EVENT_MANUAL_ASSIGN,
    EVENT_ORDER_CREATED,
    EVENT_STATUS_UPDATE,
    EVENT_UNASSIGN,
    record_status_change,
)
from shipdesk.services.awb_pool_service import AwbPoolService, now_iso
from shipdesk.services.order_adapter import read_shipment
from shipdesk.services.row_values import cell_text
from shipdesk.services.shipment_status import ShipmentStatus, StatusBucket, display_status, statuses_in_bucket

logger = logging.getLogger(__name__)


def to_order_doc_id(order_key: Any) -> str:
    """Deterministic document id for an order's natural key."""
    raw = cell_text(order_key)
    if not raw:
        return "order_unknown"
    return "order_" + hashlib.sha256(raw.encode("utf-8")).hexdigest()


class ShipmentService:
    """Shipment lifecycle of orders. Every status change writes one history row in the same transaction."""

    @staticmethod
    async def get_by_id(db: AsyncSession, doc_id: str) -> Order | None:
        return await db.get(Order, doc_id)

    @staticmethod
    async def find_by_order_id(db: AsyncSession, order_id: str, store_id: str = "") -> Order | None:
        """Look up by display order id, within the store when one is given."""
        q = select(Order).where(Order.order_id == order_id)
        if store_id:
            q = q.where(Order.store_id == store_id.strip().lower())
        result = await db.execute(q.limit(1))
        return result.scalars().first()

    @staticmethod
    async def find_by_tracking_number(db: AsyncSession, tracking_number: str, limit: int = 5) -> list[Order]:
        result = await db.execute(
            select(Order).where(Order.consignment_number == tracking_number).limit(limit)
        )
        matches = list(result.scalars().all())
        if matches:
            return matches
        # Orders imported before the column existed keep it in the payload.
        result = await db.execute(
            select(Order).where(Order.data["consignment_number"].as_string() == tracking_number).limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        *,
        store_id: str | None = None,
        bucket: StatusBucket | str | None = None,
        limit: int = 50,
    ) -> list[Order]:
        q = select(Order)
        if store_id:
            q = q.where(Order.store_id == store_id.strip().lower())
        if bucket:
            q = q.where(Order.shipment_status.in_([s.value for s in statuses_in_bucket(bucket)]))
        q = q.order_by(Order.updated_at.desc()).limit(limit)
        result = await db.execute(q)
        return list(result.scalars().all())

    @staticmethod
    async def create_order(
        session_maker: async_sessionmaker[AsyncSession],
        order_key: str,
        store_id: str,
        *,
        order_id: str = "",
        courier_type: str = "",
        weight_kg: float | None = None,
        expected_delivery_date: str = "",
        data: dict | None = None,
        actor: Actor | None = None,
    ) -> tuple[Order, bool]:
        """Create an order at status New. Idempotent by doc id; returns (order, created)."""
        doc_id = to_order_doc_id(order_key)
        ts = now_iso()
        try:
            async with session_maker() as session:
                async with session.begin():
                    existing = await session.get(Order, doc_id)
                    if existing is not None:
                        return existing, False
                    order = Order(
                        doc_id=doc_id,
                        order_key=cell_text(order_key),
                        order_id=cell_text(order_id) or cell_text(order_key),
                        store_id=cell_text(store_id).lower(),
                        data=data or {},
                        shipment_status=ShipmentStatus.NEW.value,
                        courier_type=cell_text(courier_type),
                        weight_kg=round(weight_kg, 1) if weight_kg is not None else None,
                        expected_delivery_date=cell_text(expected_delivery_date),
                        updated_at=ts,
                        event=EVENT_ORDER_CREATED,
                        updated_by=(actor or Actor()).as_record(),
                    )
                    session.add(order)
        except IntegrityError:
            # Lost a create race on the same key; the other writer's order stands.
            async with session_maker() as session:
                existing = await session.get(Order, doc_id)
            if existing is None:
                raise
            return existing, False
        logger.info("Created order %s (%s) for store %s", order.order_id, doc_id, order.store_id)
        return order, True

    @staticmethod
    def _apply_status(
        db: AsyncSession,
        order: Order,
        status: str,
        actor: Actor | None,
        changed_at: str,
        event: str,
        **fields: Any,
    ) -> str:
        """Write the new status onto the order and append its history row. Returns the previous status."""
        previous = read_shipment(order).shipment_status
        order.shipment_status = status
        order.updated_at = changed_at
        order.event = event
        order.updated_by = (actor or Actor()).as_record()
        for name, value in fields.items():
            setattr(order, name, value)
        record_status_change(db, order.doc_id, previous, status, actor, changed_at, event)
        return previous

    @staticmethod
    async def update_status(
        session_maker: async_sessionmaker[AsyncSession],
        doc_id: str,
        new_raw_status: Any,
        actor: Actor | None,
        *,
        event: str = EVENT_STATUS_UPDATE,
        changed_at: str | None = None,
        **fields: Any,
    ) -> dict[str, str]:
        """
        Move an order to a new shipment status.

        The status is validated before anything is read. The order update and
        its history row share one transaction. Any canonical state may follow
        any other.
        """
        status = display_status(new_raw_status)
        if not status:
            raise InvalidShipmentStatusError(new_raw_status)
        ts = changed_at or now_iso()

        async def _update(session: AsyncSession) -> dict[str, str]:
            order = await session.get(Order, doc_id)
            if order is None:
                raise OrderNotFoundError(doc_id)
            ShipmentService._apply_status(session, order, status, actor, ts, event, **fields)
            return {"doc_id": doc_id, "shipment_status": status, "updated_at": ts}

        return await run_transaction(
            session_maker,
            _update,
            max_attempts=get_settings().ALLOCATE_MAX_ATTEMPTS,
            name="shipment_status_update",
        )

    @staticmethod
    async def assign_order(
        session_maker: async_sessionmaker[AsyncSession],
        doc_id: str,
        actor: Actor | None = None,
    ) -> dict[str, Any]:
        """
        Give an order an AWB and move it to Assigned.

        An order that already has a consignment number keeps it. If the order
        update fails after a fresh allocation the AWB goes back to the pool.
        """
        settings = get_settings()
        async with session_maker() as session:
            order = await session.get(Order, doc_id)
        if order is None:
            raise OrderNotFoundError(doc_id)

        shipment = read_shipment(order)
        if shipment.shipment_status == ShipmentStatus.ASSIGNED.value:
            return {
                "doc_id": doc_id,
                "shipment_status": shipment.shipment_status,
                "consignment_number": shipment.consignment_number,
                "already_assigned": True,
            }

        awb_number = shipment.consignment_number
        allocated = False
        if not awb_number:
            allocation = await AwbPoolService.allocate(
                session_maker,
                courier_type=shipment.courier_type,
                doc_id=doc_id,
                assigned_store_id=order.store_id,
                order_id=order.order_id,
                request_id=f"assign:{doc_id}",
            )
            awb_number = allocation.awb_number
            allocated = True

        ts = now_iso()
        courier_partner = shipment.courier_partner or settings.DEFAULT_COURIER_PARTNER

        async def _assign(session: AsyncSession) -> None:
            current = await session.get(Order, doc_id)
            if current is None:
                raise OrderNotFoundError(doc_id)
            ShipmentService._apply_status(
                session,
                current,
                ShipmentStatus.ASSIGNED.value,
                actor,
                ts,
                EVENT_MANUAL_ASSIGN,
                consignment_number=awb_number,
                courier_partner=courier_partner,
                shipping_date=ts,
            )

        try:
            await run_transaction(
                session_maker, _assign, max_attempts=settings.ALLOCATE_MAX_ATTEMPTS, name="shipment_assign"
            )
        except Exception:
            if allocated:
                logger.warning("Assigning %s failed; releasing AWB %s", doc_id, awb_number)
                await AwbPoolService.release(session_maker, awb_number, doc_id)
            raise

        return {
            "doc_id": doc_id,
            "shipment_status": ShipmentStatus.ASSIGNED.value,
            "consignment_number": awb_number,
            "already_assigned": False,
        }

    @staticmethod
    async def assign_orders(
        session_maker: async_sessionmaker[AsyncSession],
        store_id: str,
        order_ids: list[str],
        actor: Actor | None = None,
    ) -> dict[str, Any]:
        """Assign many orders by display order id. Unknown orders and empty pools land in ``missing``."""
        settings = get_settings()
        keys = [k for k in (cell_text(o) for o in order_ids or []) if k]
        if not keys:
            return {"ok": True, "updated": 0, "missing": []}
        if len(keys) > settings.ASSIGN_ORDERS_LIMIT:
            raise OrderKeysLimitError(f"At most {settings.ASSIGN_ORDERS_LIMIT} orders per request")

        store_id = cell_text(store_id).lower()
        updated = 0
        missing: list[str] = []
        for order_id in keys:
            async with session_maker() as session:
                order = await ShipmentService.find_by_order_id(session, order_id, store_id)
            if order is None:
                missing.append(order_id)
                continue
            try:
                result = await ShipmentService.assign_order(session_maker, order.doc_id, actor)
            except AwbUnavailableError:
                missing.append(order_id)
                continue
            if not result["already_assigned"]:
                updated += 1

        return {"ok": True, "updated": updated, "missing": missing}

    @staticmethod
    async def unassign_order(
        session_maker: async_sessionmaker[AsyncSession],
        doc_id: str,
        actor: Actor | None = None,
    ) -> dict[str, Any]:
        """
        Take an order back to New and return its AWB to the pool.

        The order update commits before the release: a failure between the
        two leaves the AWB held by no order, never by two.
        """
        ts = now_iso()
        released: dict[str, str] = {}

        async def _unassign(session: AsyncSession) -> None:
            order = await session.get(Order, doc_id)
            if order is None:
                raise OrderNotFoundError(doc_id)
            released["awb_number"] = read_shipment(order).consignment_number
            data = dict(order.data or {})
            data.pop("consignmentNumber", None)
            data.pop("consignment_number", None)
            ShipmentService._apply_status(
                session,
                order,
                ShipmentStatus.NEW.value,
                actor,
                ts,
                EVENT_UNASSIGN,
                consignment_number="",
                data=data,
            )

        await run_transaction(
            session_maker, _unassign, max_attempts=get_settings().ALLOCATE_MAX_ATTEMPTS, name="shipment_unassign"
        )
        awb_number = released.get("awb_number", "")
        if awb_number:
            await AwbPoolService.release(session_maker, awb_number, doc_id)
        return {"doc_id": doc_id, "shipment_status": ShipmentStatus.NEW.value, "released_awb": awb_number}
