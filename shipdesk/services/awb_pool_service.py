"""ShipDesk — AWB pool: bulk upload, atomic allocation, release."""
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shipdesk.config import get_settings
from shipdesk.core.errors import AwbPoolTooLargeError, AwbRequiredError, AwbUnavailableError
from shipdesk.db.transaction import WriteConflict, run_transaction
from shipdesk.models.awb import AwbCategory, AwbPoolEntry
from shipdesk.services.row_values import cell_text, pick_row_value

logger = logging.getLogger(__name__)

# ── Courier type → pool category ────────────────────────────────────────────
COURIER_TYPE_CATEGORIES: dict[str, AwbCategory] = {
    "Z- Express": AwbCategory.Z_EXPRESS,
    "D- Surface": AwbCategory.D_PREPAID,
    "D- Air": AwbCategory.D_PREPAID,
    "COD Surface": AwbCategory.D_COD,
    "COD Air": AwbCategory.D_COD,
}
DEFAULT_CATEGORY = AwbCategory.D_PREPAID
# Category of entries known only from a release; never matched by allocate.
UNCATEGORIZED = ""

# ── Upload column aliases per category ──────────────────────────────────────
CATEGORY_COLUMN_ALIASES: dict[AwbCategory, tuple[str, ...]] = {
    AwbCategory.Z_EXPRESS: ("Z - Express", "Z- Express", "Z Express", "zExpress", "z_express"),
    AwbCategory.D_PREPAID: ("D - Surface/D - Air", "D- Surface/D- Air", "D Surface/D Air", "dPrepaid", "d_prepaid"),
    AwbCategory.D_COD: ("COD Surface/COD Air", "COD Surface / COD Air", "cod", "dCod", "d_cod"),
}

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")
_CELL_SEPARATORS = re.compile(r"[\s,;|]+")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class AwbPoolRow:
    awb_number: str
    category: AwbCategory


@dataclass(frozen=True)
class AllocationResult:
    awb_number: str
    category: AwbCategory


def normalize_awb(value: Any) -> str:
    """Keep alphanumerics only: ' D-00 12 ' -> 'D0012'."""
    return _NON_ALNUM.sub("", cell_text(value))


def split_awb_cell(value: Any) -> list[str]:
    """A cell may hold several AWBs separated by whitespace, comma, semicolon or pipe."""
    text = cell_text(value)
    if not text:
        return []
    return [awb for awb in (normalize_awb(part) for part in _CELL_SEPARATORS.split(text)) if awb]


def courier_type_to_category(courier_type: Any) -> AwbCategory:
    label = cell_text(courier_type)
    category = COURIER_TYPE_CATEGORIES.get(label)
    if category is None:
        logger.warning("Unrecognized courier type %r; drawing from %s pool", label, DEFAULT_CATEGORY.value)
        return DEFAULT_CATEGORY
    return category


def parse_pool_rows(rows: Iterable[Mapping[str, Any]]) -> list[AwbPoolRow]:
    """Extract and deduplicate AWBs from uploaded rows. The later category wins on conflict."""
    entries: dict[str, AwbCategory] = {}
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        for category, aliases in CATEGORY_COLUMN_ALIASES.items():
            for awb in split_awb_cell(pick_row_value(row, aliases)):
                entries[awb] = category
    return [AwbPoolRow(awb_number=awb, category=category) for awb, category in entries.items()]


def _chunks(items: list, size: int) -> Iterable[list]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


class AwbPoolService:
    """Inventory of AWBs with exactly-once allocation."""

    @staticmethod
    async def upload_pool(
        session_maker: async_sessionmaker[AsyncSession],
        rows: Iterable[Mapping[str, Any]],
        uploaded_by: dict | None = None,
    ) -> dict[str, int]:
        """
        Upsert AWBs from uploaded rows, one transaction per chunk.

        Existing entries only get category/upload metadata; assignment fields
        are never written here, so an upload cannot race an allocation. A
        failing chunk rolls back alone and the error propagates.
        """
        settings = get_settings()
        entries = parse_pool_rows(rows)
        if not entries:
            return {"total": 0, "created": 0, "updated": 0, "skipped": 0}
        if len(entries) > settings.AWB_POOL_MAX_ENTRIES:
            raise AwbPoolTooLargeError(len(entries), settings.AWB_POOL_MAX_ENTRIES)

        ts = now_iso()
        created = 0
        updated = 0
        for chunk in _chunks(entries, settings.AWB_UPLOAD_CHUNK_SIZE):
            async with session_maker() as session:
                async with session.begin():
                    result = await session.execute(
                        select(AwbPoolEntry.awb_number).where(
                            AwbPoolEntry.awb_number.in_([e.awb_number for e in chunk])
                        )
                    )
                    existing = set(result.scalars().all())
                    for e in chunk:
                        logger.debug("AWB pool upload: %s -> %s", e.awb_number, e.category.value)
                        if e.awb_number in existing:
                            await session.execute(
                                update(AwbPoolEntry)
                                .where(AwbPoolEntry.awb_number == e.awb_number)
                                .values(
                                    category=e.category.value,
                                    updated_at=ts,
                                    last_uploaded_at=ts,
                                    last_uploaded_by=uploaded_by,
                                )
                            )
                            updated += 1
                        else:
                            session.add(
                                AwbPoolEntry(
                                    awb_number=e.awb_number,
                                    category=e.category.value,
                                    assigned=False,
                                    created_at=ts,
                                    updated_at=ts,
                                    last_uploaded_at=ts,
                                    last_uploaded_by=uploaded_by,
                                )
                            )
                            created += 1

        logger.info("AWB pool upload: total=%d created=%d updated=%d", len(entries), created, updated)
        return {"total": len(entries), "created": created, "updated": updated, "skipped": 0}

    @staticmethod
    async def allocate(
        session_maker: async_sessionmaker[AsyncSession],
        courier_type: str | None,
        doc_id: str,
        assigned_store_id: str = "",
        order_id: str = "",
        request_id: str = "",
    ) -> AllocationResult:
        """
        Atomically take one unassigned AWB from the courier type's category.

        The candidate read and the conditional write share one transaction;
        a write that finds the entry already taken is a conflict and the
        transaction is rerun. Raises AwbUnavailableError when the category
        has nothing left.
        """
        settings = get_settings()
        category = courier_type_to_category(courier_type)
        request_id = cell_text(request_id)

        async def _allocate(session: AsyncSession) -> AllocationResult:
            if request_id:
                prior = await session.execute(
                    select(AwbPoolEntry).where(
                        AwbPoolEntry.request_id == request_id,
                        AwbPoolEntry.assigned == True,  # noqa: E712
                    )
                )
                entry = prior.scalars().first()
                if entry is not None:
                    return AllocationResult(awb_number=entry.awb_number, category=AwbCategory(entry.category))

            candidate = await session.execute(
                select(AwbPoolEntry.awb_number)
                .where(
                    AwbPoolEntry.category == category.value,
                    AwbPoolEntry.assigned == False,  # noqa: E712
                )
                .limit(1)
                .with_for_update(skip_locked=True)
            )
            awb_number = candidate.scalar_one_or_none()
            if awb_number is None:
                raise AwbUnavailableError(category.value)

            ts = now_iso()
            result = await session.execute(
                update(AwbPoolEntry)
                .where(
                    AwbPoolEntry.awb_number == awb_number,
                    AwbPoolEntry.assigned == False,  # noqa: E712
                )
                .values(
                    assigned=True,
                    assigned_at=ts,
                    assigned_doc_id=cell_text(doc_id),
                    assigned_store_id=cell_text(assigned_store_id).lower(),
                    order_id=cell_text(order_id),
                    request_id=request_id,
                    updated_at=ts,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise WriteConflict(awb_number)
            return AllocationResult(awb_number=awb_number, category=category)

        try:
            allocation = await run_transaction(
                session_maker,
                _allocate,
                max_attempts=settings.ALLOCATE_MAX_ATTEMPTS,
                name="awb_allocate",
            )
        except AwbUnavailableError:
            logger.warning("AWB pool exhausted for category %s (doc %s)", category.value, doc_id)
            raise
        logger.info("Allocated AWB %s (%s) to doc %s", allocation.awb_number, category.value, doc_id)
        return allocation

    @staticmethod
    async def release(
        session_maker: async_sessionmaker[AsyncSession],
        awb_number: Any,
        doc_id: str = "",
    ) -> dict[str, Any]:
        """
        Return an AWB to the pool. Idempotent. An unknown AWB is recorded
        without a category and is never handed out by allocate until an
        upload categorizes it.

        Not coordinated with allocate: callers must not release an AWB that
        may still be mid-allocation.
        """
        awb = normalize_awb(awb_number)
        if not awb:
            raise AwbRequiredError()

        ts = now_iso()
        reset = {
            "assigned": False,
            "released_at": ts,
            "assigned_at": "",
            "assigned_doc_id": "",
            "assigned_store_id": "",
            "order_id": "",
            "request_id": "",
            "updated_at": ts,
            "released_by_doc_id": cell_text(doc_id),
        }
        async with session_maker() as session:
            async with session.begin():
                entry = await session.get(AwbPoolEntry, awb)
                if entry is None:
                    # Not inventory until an upload gives it a category.
                    session.add(AwbPoolEntry(awb_number=awb, category=UNCATEGORIZED, created_at=ts, **reset))
                else:
                    for field, value in reset.items():
                        setattr(entry, field, value)

        logger.info("Released AWB %s (doc %s)", awb, doc_id or "-")
        return {"ok": True, "awb_number": awb}

    @staticmethod
    async def get_entry(db: AsyncSession, awb_number: Any) -> AwbPoolEntry | None:
        awb = normalize_awb(awb_number)
        if not awb:
            return None
        return await db.get(AwbPoolEntry, awb)

    @staticmethod
    async def pool_summary(db: AsyncSession) -> dict[str, dict[str, int]]:
        """Total / available / assigned counts per category."""
        result = await db.execute(
            select(AwbPoolEntry.category, AwbPoolEntry.assigned, func.count())
            .group_by(AwbPoolEntry.category, AwbPoolEntry.assigned)
        )
        summary = {c.value: {"total": 0, "available": 0, "assigned": 0} for c in AwbCategory}
        for category, assigned, count in result.all():
            bucket = summary.get(category)
            if bucket is None:
                continue
            bucket["total"] += count
            bucket["assigned" if assigned else "available"] += count
        return summary
