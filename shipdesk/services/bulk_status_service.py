"""ShipDesk — Bulk shipment status updates by tracking number.

Runs after the triggering request has returned. Rows are independent: a
bad row is counted and described in the job's error list, and the loop
moves on.
"""
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shipdesk.config import get_settings
from shipdesk.core.errors import CsvEmptyError, CsvTooLargeError
from shipdesk.schemas.common import Actor
from shipdesk.schemas.shipment import BulkJob
from shipdesk.services.audit_service import EVENT_BULK_STATUS
from shipdesk.services.awb_pool_service import now_iso
from shipdesk.services.job_store import JobStore
from shipdesk.services.row_values import pick_first_value, pick_row_value
from shipdesk.services.shipment_service import ShipmentService
from shipdesk.services.shipment_status import display_status

logger = logging.getLogger(__name__)

JOB_TYPE_BULK_STATUS = "bulk_status"

TRACKING_NUMBER_ALIASES = (
    "consignmentNumber",
    "consignment_number",
    "trackingNumber",
    "Tracking Number",
    "Tracking Numbers",
    "tracking_numbers",
)
STATUS_ALIASES = ("shipmentStatus", "shipment_status", "Shipment status", "Shipments Status", "shipmentsStatus")
UPDATED_AT_ALIASES = ("updated_at", "updatedAt", "Updated On", "Updated At")
COURIER_PARTNER_ALIASES = ("courierPartner", "courier_partner", "trackingCompany")


def validate_rows(rows: Sequence[Any]) -> None:
    limit = get_settings().BULK_STATUS_MAX_ROWS
    if not rows:
        raise CsvEmptyError("No rows to process")
    if len(rows) > limit:
        raise CsvTooLargeError(len(rows), limit)


def normalize_iso_date(value: str) -> str:
    """Parse a row timestamp into UTC ISO-8601, or "" when it is not a date."""
    if not value:
        return ""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return ""
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class BulkStatusService:

    @staticmethod
    def _fail(job: BulkJob, message: str, limit: int) -> None:
        job.failed += 1
        if len(job.errors) < limit:
            job.errors.append(message)

    @staticmethod
    async def process_row(
        session_maker: async_sessionmaker[AsyncSession],
        job: BulkJob,
        row: Mapping[str, Any],
        row_number: int,
        actor: Actor | None,
    ) -> None:
        settings = get_settings()
        limit = settings.BULK_ERROR_LIMIT

        tracking_number = pick_first_value(row, TRACKING_NUMBER_ALIASES)
        raw_status = pick_first_value(row, STATUS_ALIASES)
        if not tracking_number or not raw_status:
            BulkStatusService._fail(job, f"Row {row_number}: missing trackingNumber or shipmentStatus", limit)
            return

        status = display_status(raw_status)
        if not status:
            BulkStatusService._fail(job, f"Row {row_number}: invalid shipmentStatus", limit)
            return

        changed_at = normalize_iso_date(pick_first_value(row, UPDATED_AT_ALIASES)) or now_iso()
        courier_partner = pick_row_value(row, COURIER_PARTNER_ALIASES) or settings.DEFAULT_COURIER_PARTNER

        try:
            async with session_maker() as session:
                matches = await ShipmentService.find_by_tracking_number(session, tracking_number)
        except Exception as exc:
            BulkStatusService._fail(job, f"Row {row_number}: query failed ({exc})", limit)
            return

        if not matches:
            BulkStatusService._fail(job, f"Row {row_number}: tracking not found ({tracking_number})", limit)
            return

        try:
            for order in matches:
                await ShipmentService.update_status(
                    session_maker,
                    order.doc_id,
                    status,
                    actor,
                    event=EVENT_BULK_STATUS,
                    changed_at=changed_at,
                    consignment_number=tracking_number,
                    courier_partner=courier_partner,
                )
        except Exception as exc:
            BulkStatusService._fail(job, f"Row {row_number}: update failed ({exc})", limit)
            return
        job.updated += len(matches)

    @staticmethod
    async def run_job(
        session_maker: async_sessionmaker[AsyncSession],
        job_store: JobStore,
        job_id: str,
        rows: Sequence[Mapping[str, Any]],
        actor: Actor | None = None,
    ) -> BulkJob | None:
        """Process every row, saving progress after each one. Row numbers count the header as row 1."""
        job = await job_store.get(job_id)
        if job is None:
            logger.warning("Bulk status job %s vanished before it started", job_id)
            return None

        try:
            for i, row in enumerate(rows):
                try:
                    await BulkStatusService.process_row(session_maker, job, row, i + 2, actor)
                finally:
                    job.processed += 1
                    await job_store.update(job)
            job.status = "done"
        except Exception as exc:
            logger.exception("Bulk status job %s failed", job_id)
            job.status = "failed"
            job.message = str(exc) or "bulk_status_failed"
        job.finished_at = now_iso()
        await job_store.update(job)
        logger.info(
            "Bulk status job %s %s: processed=%d updated=%d failed=%d",
            job_id, job.status, job.processed, job.updated, job.failed,
        )
        return job
