"""需求识别API"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from legaldocs.api.deps import get_job_registry
from legaldocs.crud.req_identification import req_identification_crud
from legaldocs.database import get_session
from legaldocs.schemas.req_identification import (
    ReqIdentificationCreate,
    ReqIdentificationCreated,
    ReqIdentificationResponse,
)
from legaldocs.services.errors import NotFoundError
from legaldocs.services.identification.orchestrator import create_req_identification
from legaldocs.services.jobs.registry import JobRegistry

router = APIRouter()


@router.post("/req-identification", response_model=ReqIdentificationCreated, status_code=201)
async def create_identification(
    request_in: ReqIdentificationCreate,
    db: AsyncSession = Depends(get_session),
    registry: JobRegistry = Depends(get_job_registry),
):
    """创建需求识别并提交后台任务"""
    return await create_req_identification(db, registry.req_identification, request_in)


@router.get("/req-identification/{req_identification_id}", response_model=ReqIdentificationResponse)
async def get_identification(
    req_identification_id: int,
    db: AsyncSession = Depends(get_session),
):
    """获取需求识别详情及结果"""
    record = await req_identification_crud.get(db, req_identification_id)
    if not record:
        raise NotFoundError("Requirement Identification not found", errors={"id": req_identification_id})
    return {
        "id": record.id,
        "name": record.name,
        "description": record.description,
        "subject_id": record.subject_id,
        "intelligence_level": record.intelligence_level,
        "status": record.status,
        "job_id": record.job_id,
        "user_id": record.user_id,
        "created_at": record.created_at,
        "legal_basis_ids": [lb.id for lb in record.legal_bases],
        "aspect_ids": [a.id for a in record.aspects],
        "requirements": record.requirements,
    }
