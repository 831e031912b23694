"""条款抽取API"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from legaldocs.api.deps import get_job_registry
from legaldocs.crud.article import article_crud
from legaldocs.crud.legal_basis import legal_basis_crud
from legaldocs.database import get_session
from legaldocs.schemas.article import ArticleListResponse
from legaldocs.schemas.job import JobAcceptedResponse
from legaldocs.schemas.legal_basis import LegalBasisResponse
from legaldocs.services.articles.extraction_job import submit_extraction
from legaldocs.services.errors import NotFoundError
from legaldocs.services.jobs.registry import JobRegistry

router = APIRouter()


@router.get("/legal-basis/{legal_basis_id}", response_model=LegalBasisResponse)
async def get_legal_basis(
    legal_basis_id: int,
    db: AsyncSession = Depends(get_session),
):
    """获取单个法律依据"""
    legal_basis = await legal_basis_crud.get(db, legal_basis_id)
    if not legal_basis:
        raise NotFoundError("LegalBasis not found", errors={"legalBasisId": legal_basis_id})
    return legal_basis


@router.post(
    "/legal-basis/{legal_basis_id}/extract-articles",
    response_model=JobAcceptedResponse,
    status_code=202,
)
async def extract_articles(
    legal_basis_id: int,
    db: AsyncSession = Depends(get_session),
    registry: JobRegistry = Depends(get_job_registry),
):
    """提交条款抽取任务"""
    job = await submit_extraction(db, registry.articles, legal_basis_id)
    return {"jobId": job.id}


@router.get("/legal-basis/{legal_basis_id}/articles", response_model=ArticleListResponse)
async def get_articles(
    legal_basis_id: int,
    db: AsyncSession = Depends(get_session),
):
    """获取法律依据的条款（按顺序）"""
    legal_basis = await legal_basis_crud.get(db, legal_basis_id)
    if not legal_basis:
        raise NotFoundError("LegalBasis not found", errors={"legalBasisId": legal_basis_id})
    articles = await article_crud.get_by_legal_basis(db, legal_basis_id)
    return {"legal_basis_id": legal_basis_id, "articles": articles}
