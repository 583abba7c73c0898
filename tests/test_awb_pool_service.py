"""
AWB pool tests: sheet parsing, idempotent upload, exactly-once allocation
under concurrency, and release.
"""
import asyncio

import pytest

from shipdesk.config import get_settings
from shipdesk.core.errors import AwbPoolTooLargeError, AwbRequiredError, AwbUnavailableError
from shipdesk.models.awb import AwbCategory
from shipdesk.services.awb_pool_service import (
    AwbPoolService,
    courier_type_to_category,
    normalize_awb,
    parse_pool_rows,
    split_awb_cell,
)


def z_rows(*awbs):
    return [{"Z - Express": awb} for awb in awbs]


# =============================================================================
# Parsing
# =============================================================================

class TestParsing:
    """Pure row parsing, no database"""

    def test_normalize_awb_keeps_alphanumerics(self):
        assert normalize_awb(" D-00 12 ") == "D0012"
        assert normalize_awb(None) == ""

    def test_split_cell_on_all_separators(self):
        assert split_awb_cell("Z001, Z002;Z003 | Z004\nZ005") == ["Z001", "Z002", "Z003", "Z004", "Z005"]
        assert split_awb_cell("  ") == []

    def test_header_aliases_and_normalized_headers(self):
        rows = [
            {"Z - Express": "Z001", "D - Surface/D - Air": "D001", "COD Surface/COD Air": "C001"},
            {"z express": "Z002", "dPrepaid": "D002", "cod": "C002"},
        ]
        parsed = {r.awb_number: r.category for r in parse_pool_rows(rows)}
        assert parsed == {
            "Z001": AwbCategory.Z_EXPRESS,
            "Z002": AwbCategory.Z_EXPRESS,
            "D001": AwbCategory.D_PREPAID,
            "D002": AwbCategory.D_PREPAID,
            "C001": AwbCategory.D_COD,
            "C002": AwbCategory.D_COD,
        }

    def test_duplicates_collapse_and_later_category_wins(self):
        rows = [{"Z - Express": "X-1"}, {"COD Surface/COD Air": "X1"}]
        parsed = parse_pool_rows(rows)
        assert len(parsed) == 1
        assert parsed[0].awb_number == "X1"
        assert parsed[0].category == AwbCategory.D_COD

    def test_non_mapping_rows_are_skipped(self):
        assert parse_pool_rows(["Z001", None, {"unrelated": "x"}]) == []

    def test_courier_type_mapping(self):
        assert courier_type_to_category("Z- Express") == AwbCategory.Z_EXPRESS
        assert courier_type_to_category("D- Air") == AwbCategory.D_PREPAID
        assert courier_type_to_category("COD Surface") == AwbCategory.D_COD

    def test_unknown_courier_type_falls_back_with_warning(self, caplog):
        with caplog.at_level("WARNING"):
            assert courier_type_to_category("Carrier Pigeon") == AwbCategory.D_PREPAID
        assert "Carrier Pigeon" in caplog.text


# =============================================================================
# Upload
# =============================================================================

class TestUpload:

    @pytest.mark.asyncio
    async def test_upload_creates_unassigned_entries(self, session_maker):
        result = await AwbPoolService.upload_pool(session_maker, z_rows("Z001", "Z002"), uploaded_by={"uid": "a"})
        assert result == {"total": 2, "created": 2, "updated": 0, "skipped": 0}

        async with session_maker() as db:
            entry = await AwbPoolService.get_entry(db, "Z001")
        assert entry.assigned is False
        assert entry.category == "z_express"
        assert entry.last_uploaded_by == {"uid": "a"}

    @pytest.mark.asyncio
    async def test_reupload_never_unassigns(self, session_maker):
        await AwbPoolService.upload_pool(session_maker, z_rows("Z001"))
        await AwbPoolService.allocate(session_maker, "Z- Express", "order_a")

        result = await AwbPoolService.upload_pool(session_maker, z_rows("Z001"))
        assert result["updated"] == 1
        assert result["created"] == 0

        async with session_maker() as db:
            entry = await AwbPoolService.get_entry(db, "Z001")
        assert entry.assigned is True
        assert entry.assigned_doc_id == "order_a"

    @pytest.mark.asyncio
    async def test_reupload_can_change_category(self, session_maker):
        await AwbPoolService.upload_pool(session_maker, z_rows("A1"))
        await AwbPoolService.upload_pool(session_maker, [{"cod": "A1"}])
        async with session_maker() as db:
            entry = await AwbPoolService.get_entry(db, "A1")
        assert entry.category == "d_cod"

    @pytest.mark.asyncio
    async def test_upload_spanning_several_chunks(self, session_maker, monkeypatch):
        monkeypatch.setattr(get_settings(), "AWB_UPLOAD_CHUNK_SIZE", 3)
        awbs = [f"Z{i:03d}" for i in range(10)]
        result = await AwbPoolService.upload_pool(session_maker, z_rows(*awbs))
        assert result["created"] == 10
        async with session_maker() as db:
            summary = await AwbPoolService.pool_summary(db)
        assert summary["z_express"] == {"total": 10, "available": 10, "assigned": 0}

    @pytest.mark.asyncio
    async def test_too_large_writes_nothing(self, session_maker, monkeypatch):
        monkeypatch.setattr(get_settings(), "AWB_POOL_MAX_ENTRIES", 3)
        with pytest.raises(AwbPoolTooLargeError):
            await AwbPoolService.upload_pool(session_maker, z_rows("Z1", "Z2", "Z3", "Z4"))
        async with session_maker() as db:
            summary = await AwbPoolService.pool_summary(db)
        assert summary["z_express"]["total"] == 0

    @pytest.mark.asyncio
    async def test_empty_upload(self, session_maker):
        result = await AwbPoolService.upload_pool(session_maker, [{"Z - Express": ""}])
        assert result["total"] == 0


# =============================================================================
# Allocation
# =============================================================================

class TestAllocate:

    @pytest.mark.asyncio
    async def test_end_to_end_by_category(self, session_maker):
        """Z001 and D001 are drawn from their own pools, then both pools are empty"""
        await AwbPoolService.upload_pool(
            session_maker, [{"Z - Express": "Z001", "D - Surface/D - Air": "D001"}]
        )

        z = await AwbPoolService.allocate(session_maker, "Z- Express", "order_1", "Shop-A", "1001")
        assert z.awb_number == "Z001"
        assert z.category == AwbCategory.Z_EXPRESS

        d = await AwbPoolService.allocate(session_maker, "D- Surface", "order_2")
        assert d.awb_number == "D001"

        with pytest.raises(AwbUnavailableError) as exc_info:
            await AwbPoolService.allocate(session_maker, "Z- Express", "order_3")
        assert exc_info.value.category == "z_express"

        async with session_maker() as db:
            entry = await AwbPoolService.get_entry(db, "Z001")
        assert entry.assigned_doc_id == "order_1"
        assert entry.assigned_store_id == "shop-a"
        assert entry.order_id == "1001"
        assert entry.assigned_at

    @pytest.mark.asyncio
    async def test_category_isolation(self, session_maker):
        await AwbPoolService.upload_pool(session_maker, [{"cod": "C001"}])
        with pytest.raises(AwbUnavailableError):
            await AwbPoolService.allocate(session_maker, "Z- Express", "order_1")

    @pytest.mark.asyncio
    async def test_concurrent_allocations_are_distinct(self, session_maker):
        awbs = [f"Z{i:03d}" for i in range(8)]
        await AwbPoolService.upload_pool(session_maker, z_rows(*awbs))

        results = await asyncio.gather(
            *(AwbPoolService.allocate(session_maker, "Z- Express", f"order_{i}") for i in range(8))
        )
        assert sorted(r.awb_number for r in results) == awbs

    @pytest.mark.asyncio
    async def test_one_more_caller_than_awbs(self, session_maker):
        await AwbPoolService.upload_pool(session_maker, z_rows("Z001", "Z002", "Z003"))

        results = await asyncio.gather(
            *(AwbPoolService.allocate(session_maker, "Z- Express", f"order_{i}") for i in range(4)),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], AwbUnavailableError)
        assert len({r.awb_number for r in results if not isinstance(r, Exception)}) == 3

    @pytest.mark.asyncio
    async def test_request_id_makes_retry_return_same_awb(self, session_maker):
        await AwbPoolService.upload_pool(session_maker, z_rows("Z001", "Z002"))
        first = await AwbPoolService.allocate(session_maker, "Z- Express", "order_1", request_id="req-1")
        again = await AwbPoolService.allocate(session_maker, "Z- Express", "order_1", request_id="req-1")
        assert again.awb_number == first.awb_number

        async with session_maker() as db:
            summary = await AwbPoolService.pool_summary(db)
        assert summary["z_express"]["assigned"] == 1

    @pytest.mark.asyncio
    async def test_unknown_courier_draws_from_default_pool(self, session_maker):
        await AwbPoolService.upload_pool(session_maker, [{"dPrepaid": "D001"}])
        result = await AwbPoolService.allocate(session_maker, None, "order_1")
        assert result.awb_number == "D001"
        assert result.category == AwbCategory.D_PREPAID


# =============================================================================
# Release
# =============================================================================

class TestRelease:

    @pytest.mark.asyncio
    async def test_release_returns_awb_to_pool(self, session_maker):
        await AwbPoolService.upload_pool(session_maker, z_rows("Z001"))
        await AwbPoolService.allocate(session_maker, "Z- Express", "order_1", request_id="req-1")

        result = await AwbPoolService.release(session_maker, " Z-001 ", doc_id="order_1")
        assert result == {"ok": True, "awb_number": "Z001"}

        async with session_maker() as db:
            entry = await AwbPoolService.get_entry(db, "Z001")
        assert entry.assigned is False
        assert entry.assigned_doc_id == ""
        assert entry.request_id == ""
        assert entry.released_by_doc_id == "order_1"
        assert entry.released_at

        again = await AwbPoolService.allocate(session_maker, "Z- Express", "order_2")
        assert again.awb_number == "Z001"

    @pytest.mark.asyncio
    async def test_release_is_idempotent(self, session_maker):
        await AwbPoolService.upload_pool(session_maker, z_rows("Z001"))
        await AwbPoolService.release(session_maker, "Z001")
        await AwbPoolService.release(session_maker, "Z001")
        async with session_maker() as db:
            summary = await AwbPoolService.pool_summary(db)
        assert summary["z_express"] == {"total": 1, "available": 1, "assigned": 0}

    @pytest.mark.asyncio
    async def test_release_unknown_awb_is_not_inventory(self, session_maker):
        """A tracking number the pool never issued must not become allocatable"""
        await AwbPoolService.release(session_maker, "FOREIGN123")
        async with session_maker() as db:
            entry = await AwbPoolService.get_entry(db, "FOREIGN123")
            summary = await AwbPoolService.pool_summary(db)
        assert entry is not None
        assert entry.assigned is False
        assert entry.category == ""
        assert set(summary) == {"z_express", "d_prepaid", "d_cod"}
        assert summary["d_prepaid"]["total"] == 0

        with pytest.raises(AwbUnavailableError):
            await AwbPoolService.allocate(session_maker, "D- Surface", "order_other")

    @pytest.mark.asyncio
    async def test_upload_categorizes_released_unknown_awb(self, session_maker):
        await AwbPoolService.release(session_maker, "LATE1")
        result = await AwbPoolService.upload_pool(session_maker, [{"dPrepaid": "LATE1"}])
        assert result["updated"] == 1
        allocation = await AwbPoolService.allocate(session_maker, "D- Air", "order_1")
        assert allocation.awb_number == "LATE1"

    @pytest.mark.asyncio
    async def test_release_requires_awb(self, session_maker):
        with pytest.raises(AwbRequiredError):
            await AwbPoolService.release(session_maker, " - ")
