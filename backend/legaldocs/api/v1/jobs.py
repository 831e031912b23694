"""任务状态API"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from legaldocs.api.deps import get_job_registry
from legaldocs.database import get_session
from legaldocs.schemas.job import JobRemovedResponse, PendingJobsResponse
from legaldocs.services.jobs.registry import JobRegistry
from legaldocs.services.jobs.status import get_job_status, has_pending_jobs, remove_job

router = APIRouter()


@router.get("/jobs/articles/legalBasis/{legal_basis_id}", response_model=PendingJobsResponse)
async def get_pending_extraction_jobs(
    legal_basis_id: int,
    db: AsyncSession = Depends(get_session),
    registry: JobRegistry = Depends(get_job_registry),
):
    """某法律依据是否有未完成的条款抽取任务"""
    return await has_pending_jobs(db, registry, legal_basis_id)


@router.get("/jobs/{job_type}/{job_id}")
async def get_job(
    job_type: str,
    job_id: str,
    registry: JobRegistry = Depends(get_job_registry),
):
    """查询任务状态"""
    status_code, body = get_job_status(registry, job_type, job_id)
    return JSONResponse(status_code=status_code, content=body)


@router.delete("/jobs/{job_type}/{job_id}", response_model=JobRemovedResponse)
async def delete_job(
    job_type: str,
    job_id: str,
    registry: JobRegistry = Depends(get_job_registry),
):
    """移除尚未开始执行的任务"""
    return remove_job(registry, job_type, job_id)
