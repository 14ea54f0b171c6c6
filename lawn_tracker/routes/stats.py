"""
API endpoint for job statistics
"""

from fastapi import APIRouter, Depends

from ..domain.jobs.router import get_job_service
from ..domain.jobs.schemas import JobStats
from ..domain.jobs.service import JobService

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=JobStats)
async def get_job_stats(service: JobService = Depends(get_job_service)):
    """Job counts by status and type, completed revenue, and recent activity"""
    return await service.get_stats()
