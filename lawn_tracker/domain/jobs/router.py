"""Job router - FastAPI endpoints for job operations"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request

from ...services.google_calendar_service import GoogleCalendarSync
from .repository import JobStore
from .schemas import Job, JobCreate, JobUpdate, ScopeChoiceResponse
from .scope import Scope, ScopedAction
from .service import JobService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


def get_job_store(request: Request) -> JobStore:
    return request.app.state.job_store


def get_calendar(request: Request) -> Optional[GoogleCalendarSync]:
    return getattr(request.app.state, "calendar", None)


def get_job_service(
    background_tasks: BackgroundTasks,
    store: JobStore = Depends(get_job_store),
    calendar: Optional[GoogleCalendarSync] = Depends(get_calendar),
) -> JobService:
    """Dependency injection for JobService"""
    return JobService(store, calendar=calendar, background_tasks=background_tasks)


# ============================================================================
# READS
# ============================================================================


@router.get("", response_model=list[Job])
async def list_jobs(service: JobService = Depends(get_job_service)):
    """Get all jobs, ordered by start time"""
    return await service.list_jobs()


@router.get("/series/{recurring_id}", response_model=list[Job])
async def get_series(recurring_id: str, service: JobService = Depends(get_job_service)):
    """Get every occurrence of a recurring series"""
    return await service.get_series(recurring_id)


@router.get("/{job_id}", response_model=Job)
async def get_job(job_id: int, service: JobService = Depends(get_job_service)):
    return await service.get_job(job_id)


# ============================================================================
# CREATE
# ============================================================================


@router.post("", response_model=list[Job], status_code=201)
async def create_jobs(data: JobCreate, service: JobService = Depends(get_job_service)):
    """Create a one-off job or a recurring series"""
    return await service.create_jobs(data)


# ============================================================================
# SCOPED ACTIONS
# ============================================================================


@router.get("/{job_id}/scopes", response_model=ScopeChoiceResponse)
async def get_scope_choices(
    job_id: int,
    action: ScopedAction = Query(ScopedAction.CANCEL),
    service: JobService = Depends(get_job_service),
):
    """Scopes the caller may pick for an action on this job"""
    request = await service.begin_action(job_id, action)
    return ScopeChoiceResponse(
        jobId=job_id,
        state=request.state.value,
        scopes=[s.value for s in request.scopes],
        recurringId=request.job.recurring_id,
    )


@router.patch("/{job_id}")
async def update_job(
    job_id: int,
    data: JobUpdate,
    scope: Optional[Scope] = Query(None),
    service: JobService = Depends(get_job_service),
):
    """Edit a job; recurring jobs need a scope (single, future, series)"""
    updated = await service.edit_job(job_id, data, scope)
    return {"updated": updated}


@router.post("/{job_id}/cancel")
async def cancel_job(
    job_id: int,
    scope: Optional[Scope] = Query(None),
    service: JobService = Depends(get_job_service),
):
    cancelled = await service.cancel_job(job_id, scope)
    return {"cancelled": cancelled}


@router.post("/{job_id}/done")
async def mark_job_done(job_id: int, service: JobService = Depends(get_job_service)):
    updated = await service.mark_done(job_id)
    return {"updated": updated}


@router.delete("/series/{recurring_id}")
async def delete_series(
    recurring_id: str,
    archive: bool = Query(False),
    service: JobService = Depends(get_job_service),
):
    deleted = await service.delete_series(recurring_id, archive=archive)
    return {"deleted": deleted}


@router.delete("/{job_id}")
async def delete_job(
    job_id: int,
    scope: Optional[Scope] = Query(None),
    archive: bool = Query(False),
    service: JobService = Depends(get_job_service),
):
    """Permanently delete a job (or part of its series); archive keeps a snapshot"""
    deleted = await service.delete_job(job_id, scope, archive=archive)
    return {"deleted": deleted}
