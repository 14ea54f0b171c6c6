"""Job store - remote PostgREST table with a device-local mirror fallback"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import (
    ARCHIVE_TABLE,
    JOBS_TABLE,
    LOCAL_STORAGE_KEY,
    REMOTE_LIST_TIMEOUT_SECONDS,
    REMOTE_PROBE_TIMEOUT_SECONDS,
)
from ...models import LocalStorageEntry
from .exceptions import LocalStoreError, RemoteStoreError
from .schemas import Job, JobStatus, job_from_mirror, job_to_row, serialize_updates

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class JobFilter:
    """Row predicate: by id, by series, or by series from a date onwards"""

    id: Optional[int] = None
    recurring_id: Optional[str] = None
    start_from: Optional[datetime] = None
    status: Optional[JobStatus] = None

    def __post_init__(self):
        if self.id is None and self.recurring_id is None:
            raise ValueError("JobFilter needs an id or a recurring_id")

    @classmethod
    def by_id(cls, job_id: int) -> "JobFilter":
        return cls(id=job_id)

    @classmethod
    def by_series(cls, recurring_id: str) -> "JobFilter":
        return cls(recurring_id=recurring_id)

    @classmethod
    def from_date(cls, recurring_id: str, start_from: datetime) -> "JobFilter":
        return cls(recurring_id=recurring_id, start_from=start_from)

    def with_status(self, status: JobStatus) -> "JobFilter":
        return JobFilter(
            id=self.id, recurring_id=self.recurring_id, start_from=self.start_from, status=status
        )

    def matches(self, job: Job) -> bool:
        if self.id is not None and job.id != self.id:
            return False
        if self.recurring_id is not None and job.recurring_id != self.recurring_id:
            return False
        if self.start_from is not None and job.start_time < self.start_from:
            return False
        if self.status is not None and job.status != self.status:
            return False
        return True

    def apply(self, jobs: Iterable[Job]) -> list[Job]:
        return [job for job in jobs if self.matches(job)]

    def to_params(self) -> dict[str, str]:
        """PostgREST query parameters for this predicate"""
        params = {}
        if self.id is not None:
            params["id"] = f"eq.{self.id}"
        if self.recurring_id is not None:
            params["recurring_id"] = f"eq.{self.recurring_id}"
        if self.start_from is not None:
            params["start_time"] = f"gte.{self.start_from.isoformat()}"
        if self.status is not None:
            params["status"] = f"eq.{JobStatus(self.status).value}"
        return params


# ============================================================================
# REMOTE STORE
# ============================================================================


class RemoteJobStore:
    """CRUD over the Supabase REST API for the jobs table"""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        table: str = JOBS_TABLE,
        archive_table: str = ARCHIVE_TABLE,
        list_timeout: float = REMOTE_LIST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.table = table
        self.archive_table = archive_table
        self.list_timeout = list_timeout
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            transport=transport,
            timeout=30.0,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        body: Any = None,
        prefer: str = "return=representation",
        timeout: Optional[float] = None,
    ) -> Any:
        kwargs = {}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            response = await self._client.request(
                method,
                f"/{path}",
                params=params,
                json=body,
                headers={"Prefer": prefer},
                **kwargs,
            )
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"Supabase request failed: {e}") from e

        if response.is_error:
            raise RemoteStoreError(
                f"Supabase error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def probe(self, timeout: float = REMOTE_PROBE_TIMEOUT_SECONDS) -> bool:
        """Reachability check, run once per process"""
        try:
            await self._request(
                "GET", self.table, params={"select": "id", "limit": "1"}, timeout=timeout
            )
            return True
        except RemoteStoreError as e:
            logger.warning(f"⚠️ Supabase unreachable: {e}")
            return False

    async def list(self, job_filter: Optional[JobFilter] = None) -> list[Job]:
        params = {"select": "*", "order": "start_time.asc"}
        if job_filter:
            params.update(job_filter.to_params())
        rows = await self._request("GET", self.table, params=params, timeout=self.list_timeout)
        return [Job.model_validate(row) for row in rows or []]

    async def create(self, jobs: list[Job]) -> list[Job]:
        rows = [job_to_row(job, include_id=False) for job in jobs]
        created = await self._request("POST", self.table, body=rows)
        return [Job.model_validate(row) for row in created or []]

    async def update(self, job_id: int, updates: dict) -> None:
        await self._request(
            "PATCH",
            self.table,
            params=JobFilter.by_id(job_id).to_params(),
            body={**serialize_updates(updates), "updated_at": utc_now().isoformat()},
            prefer="return=minimal",
        )

    async def update_where(self, job_filter: JobFilter, updates: dict) -> int:
        rows = await self._request(
            "PATCH",
            self.table,
            params={**job_filter.to_params(), "select": "id"},
            body={**serialize_updates(updates), "updated_at": utc_now().isoformat()},
        )
        return len(rows or [])

    async def delete(self, job_id: int) -> None:
        await self._request(
            "DELETE", self.table, params=JobFilter.by_id(job_id).to_params(), prefer="return=minimal"
        )

    async def delete_where(self, job_filter: JobFilter) -> list[Job]:
        rows = await self._request("DELETE", self.table, params=job_filter.to_params())
        return [Job.model_validate(row) for row in rows or []]

    async def archive(self, jobs: list[Job], reason: str) -> None:
        """Snapshot jobs into the archive table before they are deleted"""
        if not jobs:
            return
        rows = [
            {"id": job.id, "deleted_reason": reason, "original_data": job_to_row(job)}
            for job in jobs
        ]
        await self._request(
            "POST",
            self.archive_table,
            params={"on_conflict": "id"},
            body=rows,
            prefer="resolution=merge-duplicates,return=minimal",
        )


# ============================================================================
# LOCAL MIRROR
# ============================================================================


class LocalJobMirror:
    """Same-device copy of the jobs collection, read and written as a whole"""

    def __init__(self, session_factory: Callable[[], Session], key: str = LOCAL_STORAGE_KEY):
        self.session_factory = session_factory
        self.key = key

    def load(self) -> list[Job]:
        db = self.session_factory()
        try:
            entry = db.get(LocalStorageEntry, self.key)
            if not entry:
                return []
            return [job_from_mirror(item) for item in json.loads(entry.value or "[]")]
        except (SQLAlchemyError, ValueError) as e:
            logger.error(f"❌ Failed to read local mirror: {e}")
            raise LocalStoreError("Could not read jobs saved on this device") from e
        finally:
            db.close()

    def save(self, jobs: list[Job]) -> None:
        payload = json.dumps([job_to_row(job) for job in jobs])
        db = self.session_factory()
        try:
            entry = db.get(LocalStorageEntry, self.key)
            if entry:
                entry.value = payload
            else:
                db.add(LocalStorageEntry(key=self.key, value=payload))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Failed to write local mirror: {e}")
            raise LocalStoreError("Could not save job on this device") from e
        finally:
            db.close()


def next_local_id(jobs: list[Job]) -> int:
    """Millisecond-clock id, kept above every id already in the mirror"""
    now_ms = int(time.time() * 1000)
    return max([now_ms] + [job.id + 1 for job in jobs if job.id is not None])


# ============================================================================
# STORE FACADE
# ============================================================================


class JobStore:
    """
    Job store client used by the service layer.

    Remote availability is decided once by probe(). In remote mode, reads fall
    back to the local mirror on any remote failure while writes raise
    RemoteStoreError. In local mode every operation runs against the mirror.
    Writes made in local mode are never pushed to the remote store.
    """

    def __init__(self, mirror: LocalJobMirror, remote: Optional[RemoteJobStore] = None):
        self.mirror = mirror
        self.remote = remote
        self.remote_available = False

    @property
    def mode(self) -> str:
        return "remote" if self.remote_available else "local"

    async def probe(self) -> bool:
        if self.remote is None:
            logger.warning("⚠️ Supabase not configured. Jobs are saved on this device only.")
            self.remote_available = False
        else:
            self.remote_available = await self.remote.probe()
        logger.info(f"📦 Job store mode: {self.mode}")
        return self.remote_available

    async def aclose(self) -> None:
        if self.remote is not None:
            await self.remote.aclose()

    # Reads

    async def list(self) -> list[Job]:
        return await self.find()

    async def find(self, job_filter: Optional[JobFilter] = None) -> list[Job]:
        if self.remote_available:
            try:
                return await self.remote.list(job_filter)
            except RemoteStoreError as e:
                logger.warning(f"⚠️ Remote read failed, using local mirror: {e}")

        jobs = sorted(self.mirror.load(), key=lambda j: j.start_time)
        return job_filter.apply(jobs) if job_filter else jobs

    async def get(self, job_id: int) -> Optional[Job]:
        jobs = await self.find(JobFilter.by_id(job_id))
        return jobs[0] if jobs else None

    async def get_for_write(self, job_id: int) -> Optional[Job]:
        """
        Look up a job that is about to be changed.

        Unlike get(), a remote failure raises RemoteStoreError instead of
        falling back to the mirror, which is stale in remote mode.
        """
        if self.remote_available:
            jobs = await self.remote.list(JobFilter.by_id(job_id))
            return jobs[0] if jobs else None
        return await self.get(job_id)

    # Writes

    async def create(self, jobs: list[Job]) -> list[Job]:
        if self.remote_available:
            return await self.remote.create(jobs)

        existing = self.mirror.load()
        now = utc_now()
        created = []
        next_id = next_local_id(existing)
        for offset, job in enumerate(jobs):
            created.append(
                job.model_copy(update={"id": next_id + offset, "created_at": now, "updated_at": now})
            )
        self.mirror.save(existing + created)
        return created

    async def update(self, job_id: int, updates: dict) -> None:
        if self.remote_available:
            await self.remote.update(job_id, updates)
            return
        self._update_local(JobFilter.by_id(job_id), updates)

    async def update_where(self, job_filter: JobFilter, updates: dict) -> int:
        if self.remote_available:
            return await self.remote.update_where(job_filter, updates)
        return self._update_local(job_filter, updates)

    async def delete(self, job_id: int) -> None:
        await self.delete_where(JobFilter.by_id(job_id))

    async def delete_where(
        self, job_filter: JobFilter, archive_reason: Optional[str] = None
    ) -> list[Job]:
        """Hard-delete matching jobs and return the rows that were removed"""
        if self.remote_available:
            if archive_reason:
                doomed = await self.remote.list(job_filter)
                await self.remote.archive(doomed, archive_reason)
            return await self.remote.delete_where(job_filter)

        if archive_reason:
            logger.warning("⚠️ Archiving is only available with Supabase; deleting without a snapshot")
        jobs = self.mirror.load()
        removed = job_filter.apply(jobs)
        if removed:
            self.mirror.save([job for job in jobs if not job_filter.matches(job)])
        return removed

    def _update_local(self, job_filter: JobFilter, updates: dict) -> int:
        jobs = self.mirror.load()
        now = utc_now()
        affected = 0
        result = []
        for job in jobs:
            if job_filter.matches(job):
                job = Job.model_validate({**job.model_dump(), **updates, "updated_at": now})
                affected += 1
            result.append(job)
        if affected:
            self.mirror.save(result)
        return affected
