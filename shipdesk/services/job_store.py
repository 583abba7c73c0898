"""ShipDesk — Progress store for background bulk jobs.

Jobs are polled by id while they run and expire after a TTL. The memory
store keeps them in this process only; the Redis store lets several
workers share them and survives restarts of any one worker.
"""
import secrets
import time
from abc import ABC, abstractmethod

import redis.asyncio as redis

from shipdesk.config import get_settings
from shipdesk.schemas.shipment import BulkJob
from shipdesk.services.awb_pool_service import now_iso


def new_job_id() -> str:
    return secrets.token_hex(12)


class JobStore(ABC):
    """create / get / update by id, with TTL-based eviction."""

    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds

    async def create(self, job_type: str, total: int) -> BulkJob:
        job = BulkJob(job_id=new_job_id(), type=job_type, total=total, started_at=now_iso())
        await self.update(job)
        return job

    @abstractmethod
    async def get(self, job_id: str) -> BulkJob | None:
        ...

    @abstractmethod
    async def update(self, job: BulkJob) -> None:
        ...


class MemoryJobStore(JobStore):
    """Process-local store. Jobs do not survive a restart."""

    def __init__(self, ttl_seconds: int, clock=time.monotonic):
        super().__init__(ttl_seconds)
        self._clock = clock
        self._jobs: dict[str, tuple[float, BulkJob]] = {}

    def _evict_expired(self) -> None:
        cutoff = self._clock() - self.ttl_seconds
        for job_id in [j for j, (created, _) in self._jobs.items() if created < cutoff]:
            del self._jobs[job_id]

    async def get(self, job_id: str) -> BulkJob | None:
        self._evict_expired()
        item = self._jobs.get(job_id)
        return item[1].model_copy(deep=True) if item else None

    async def update(self, job: BulkJob) -> None:
        self._evict_expired()
        created = self._jobs[job.job_id][0] if job.job_id in self._jobs else self._clock()
        self._jobs[job.job_id] = (created, job.model_copy(deep=True))


class RedisJobStore(JobStore):
    """Jobs as JSON under ``bulk_job:{id}`` with SETEX expiry."""

    def __init__(self, client: redis.Redis, ttl_seconds: int):
        super().__init__(ttl_seconds)
        self._redis = client

    @staticmethod
    def key(job_id: str) -> str:
        return f"bulk_job:{job_id}"

    async def get(self, job_id: str) -> BulkJob | None:
        raw = await self._redis.get(self.key(job_id))
        if not raw:
            return None
        return BulkJob.model_validate_json(raw)

    async def update(self, job: BulkJob) -> None:
        await self._redis.setex(self.key(job.job_id), self.ttl_seconds, job.model_dump_json())


_job_store: JobStore | None = None


async def get_job_store() -> JobStore:
    """Dependency: the configured job store (process-wide singleton)."""
    global _job_store
    if _job_store is None:
        settings = get_settings()
        if settings.JOB_STORE_BACKEND == "redis":
            client = redis.from_url(settings.REDIS_URL, decode_responses=True)
            _job_store = RedisJobStore(client, settings.BULK_JOB_TTL_SECONDS)
        else:
            _job_store = MemoryJobStore(settings.BULK_JOB_TTL_SECONDS)
    return _job_store
