"""Job status queries.

Review note:
- 查询没有副作用，可以反复轮询；终态结果稳定。
- 未知任务 ID 或未知任务类型都返回 404 "Job not found"。
- 失败任务仍以 200 返回，失败原因放在 `error` 字段。
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from legaldocs.crud.legal_basis import legal_basis_crud
from legaldocs.services.articles.extraction_job import find_pending_extraction
from legaldocs.services.errors import NotFoundError
from legaldocs.services.jobs.queue import JobQueue, JobStatus
from legaldocs.services.jobs.registry import JobRegistry

JOB_NOT_FOUND = "Job not found"

STATUS_MESSAGES: Dict[JobStatus, str] = {
    JobStatus.WAITING: "The job is waiting to be processed",
    JobStatus.ACTIVE: "Job is still processing",
    JobStatus.COMPLETED: "Job completed successfully",
    JobStatus.FAILED: "Job failed",
    JobStatus.DELAYED: "Job is delayed and will be processed later",
    JobStatus.PAUSED: "Job is paused and will be resumed once unpaused",
    JobStatus.STUCK: "Job is stuck and cannot proceed",
    JobStatus.UNKNOWN: "Job is in an unknown state",
}


def get_job_status(registry: JobRegistry, job_type: str, job_id: str) -> Tuple[int, Dict[str, Any]]:
    """Return `(http_status, body)` for a job status poll."""
    queue: Optional[JobQueue] = registry.get(job_type)
    if queue is None:
        return 404, {"message": JOB_NOT_FOUND}
    state = queue.get_state(job_id)
    job = queue.get_job(job_id)
    if state is None or job is None:
        return 404, {"message": JOB_NOT_FOUND}

    body: Dict[str, Any] = {"status": state.value, "message": STATUS_MESSAGES[state]}
    if state in (JobStatus.ACTIVE, JobStatus.COMPLETED):
        body["jobProgress"] = job.progress
    elif state is JobStatus.FAILED:
        body["error"] = job.error or "Unknown error"
    return 200, body


def remove_job(registry: JobRegistry, job_type: str, job_id: str) -> Dict[str, Any]:
    """Remove a job that is not running."""
    queue = registry.get(job_type)
    if queue is None:
        raise NotFoundError(JOB_NOT_FOUND)
    job = queue.remove(job_id)
    return {"success": True, "jobId": job.id, "message": "Job removed"}


async def has_pending_jobs(db: AsyncSession, registry: JobRegistry, legal_basis_id: int) -> Dict[str, Any]:
    legal_basis = await legal_basis_crud.get(db, legal_basis_id)
    if not legal_basis:
        raise NotFoundError("LegalBasis not found", errors={"legalBasisId": legal_basis_id})
    job = find_pending_extraction(registry.articles, legal_basis_id)
    if job:
        return {"hasPendingJobs": True, "progress": job.progress}
    return {"hasPendingJobs": False, "progress": None}
