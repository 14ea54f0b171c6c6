"""Job service - Business logic for creating and changing lawn jobs"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from fastapi import BackgroundTasks

from ...services.google_calendar_service import (
    GoogleCalendarSync,
    sync_created_jobs,
    sync_deleted_jobs,
    sync_updated_job,
)
from . import scope as scopes
from .exceptions import JobNotFoundError, JobStateError
from .recurrence import build_jobs
from .repository import JobFilter, JobStore
from .schemas import Job, JobCreate, JobStats, JobStatus, JobUpdate

logger = logging.getLogger(__name__)


class JobService:
    """Service layer for job business logic"""

    def __init__(
        self,
        store: JobStore,
        calendar: Optional[GoogleCalendarSync] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ):
        self.store = store
        self.calendar = calendar
        self.background_tasks = background_tasks

    def _defer(self, func, *args) -> None:
        """Queue a calendar side effect to run after the response is sent"""
        if self.calendar is None or self.background_tasks is None:
            return
        self.background_tasks.add_task(func, self.calendar, *args)

    @staticmethod
    def _ensure_pending(job: Job, action: str) -> None:
        if job.is_terminal:
            raise JobStateError(f"Cannot {action} a job that is already {job.status.value}")

    # ========================================================================
    # READS
    # ========================================================================

    async def list_jobs(self) -> list[Job]:
        return await self.store.list()

    async def get_job(self, job_id: int) -> Job:
        job = await self.store.get(job_id)
        if not job:
            raise JobNotFoundError(job_id)
        return job

    async def _get_for_write(self, job_id: int) -> Job:
        job = await self.store.get_for_write(job_id)
        if not job:
            raise JobNotFoundError(job_id)
        return job

    async def get_series(self, recurring_id: str) -> list[Job]:
        jobs = await self.store.find(JobFilter.by_series(recurring_id))
        return sorted(jobs, key=lambda j: j.occurrence_number)

    # ========================================================================
    # CREATE
    # ========================================================================

    async def create_jobs(self, data: JobCreate) -> list[Job]:
        """Expand the form into 1..N occurrences and save them in one batch"""
        jobs = build_jobs(data)
        logger.info(
            f"📥 Creating {len(jobs)} job(s) for {data.clientName} starting {data.startTime:%Y-%m-%d}"
        )
        created = await self.store.create(jobs)
        self._defer(sync_created_jobs, self.store, created)
        return created

    # ========================================================================
    # SCOPED ACTIONS
    # ========================================================================

    async def begin_action(self, job_id: int, action: scopes.ScopedAction) -> scopes.ScopeRequest:
        job = await self.get_job(job_id)
        return scopes.begin(action, job)

    async def edit_job(
        self, job_id: int, data: JobUpdate, scope: Optional[scopes.Scope] = None
    ) -> int:
        """
        Edit one occurrence, or the future / whole series.

        Series edits never move dates: start_time is only applied to a
        single occurrence. Done and cancelled occurrences are left as they are.
        """
        job = await self._get_for_write(job_id)
        resolution = scopes.resolve(scopes.ScopedAction.EDIT, job, scope)
        single = resolution.scope is scopes.Scope.SINGLE
        if single:
            self._ensure_pending(job, "edit")

        updates = data.to_updates(include_schedule=single)
        if not updates:
            return 0

        async def mutation(target: JobFilter) -> int:
            if not single:
                target = target.with_status(JobStatus.PENDING)
            return await self.store.update_where(target, updates)

        outcome = await scopes.apply(resolution, mutation)
        logger.info(f"✏️ Edited {outcome.affected} job(s) ({resolution.scope.value}) from job {job_id}")

        if single and job.google_event_id:
            self._defer(sync_updated_job, job.model_copy(update=updates))
        return outcome.affected

    async def cancel_job(self, job_id: int, scope: Optional[scopes.Scope] = None) -> int:
        """Mark the target occurrences cancelled; already done/cancelled ones are skipped"""
        job = await self._get_for_write(job_id)
        resolution = scopes.resolve(scopes.ScopedAction.CANCEL, job, scope)
        if resolution.scope is scopes.Scope.SINGLE:
            self._ensure_pending(job, "cancel")

        async def mutation(target: JobFilter) -> int:
            return await self.store.update_where(
                target.with_status(JobStatus.PENDING), {"status": JobStatus.CANCELLED}
            )

        outcome = await scopes.apply(resolution, mutation)
        logger.info(f"🚫 Cancelled {outcome.affected} job(s) ({resolution.scope.value}) from job {job_id}")
        return outcome.affected

    async def mark_done(self, job_id: int) -> int:
        job = await self._get_for_write(job_id)
        self._ensure_pending(job, "complete")
        affected = await self.store.update_where(JobFilter.by_id(job_id), {"status": JobStatus.DONE})
        logger.info(f"✅ Job {job_id} marked as done")
        return affected

    async def delete_job(
        self, job_id: int, scope: Optional[scopes.Scope] = None, archive: bool = False
    ) -> int:
        """
        Hard-delete the target occurrences (any status).

        Deleting a job that no longer exists is a no-op returning 0.
        """
        job = await self.store.get_for_write(job_id)
        if not job:
            logger.info(f"ℹ️ Job {job_id} already deleted")
            return 0

        resolution = scopes.resolve(scopes.ScopedAction.DELETE, job, scope)
        outcome = await scopes.apply(resolution, lambda target: self._delete_where(target, archive))
        logger.info(f"🗑️ Deleted {outcome.affected} job(s) ({resolution.scope.value}) from job {job_id}")
        return outcome.affected

    async def delete_series(self, recurring_id: str, archive: bool = False) -> int:
        affected = await self._delete_where(JobFilter.by_series(recurring_id), archive)
        logger.info(f"🗑️ Deleted {affected} job(s) in series {recurring_id}")
        return affected

    async def _delete_where(self, target: JobFilter, archive: bool) -> int:
        removed = await self.store.delete_where(
            target, archive_reason="cancelled" if archive else None
        )
        self._defer(sync_deleted_jobs, removed)
        return len(removed)

    # ========================================================================
    # STATS
    # ========================================================================

    async def get_stats(self, now: Optional[datetime] = None) -> JobStats:
        jobs = await self.store.list()
        now = now or datetime.now(timezone.utc)

        def created_since(days: int) -> int:
            cutoff = now - timedelta(days=days)
            count = 0
            for job in jobs:
                if job.created_at is None:
                    continue
                created = job.created_at
                if created.tzinfo is None:
                    created = created.replace(tzinfo=timezone.utc)
                if created >= cutoff:
                    count += 1
            return count

        by_type: dict[str, int] = {}
        for job in jobs:
            by_type[job.job_type.value] = by_type.get(job.job_type.value, 0) + 1

        done = [j for j in jobs if j.status == JobStatus.DONE]
        return JobStats(
            totalJobs=len(jobs),
            completedJobs=len(done),
            cancelledJobs=sum(1 for j in jobs if j.status == JobStatus.CANCELLED),
            activeJobs=sum(1 for j in jobs if j.status == JobStatus.PENDING),
            jobsByType=by_type,
            completedRevenue=sum((j.price for j in done if j.price is not None), Decimal("0.00")),
            jobsLast7Days=created_since(7),
            jobsLast30Days=created_since(30),
            source=self.store.mode,
        )
