"""Article extraction job.

Review note:
- 提交时同步校验（法律依据存在、有文档、没有未完成的抽取任务），之后的失败只记录在任务上。
- 任务流程：取文本 (20) -> 切分 (60) -> 整体替换条款 (100)。
- 切分是同步纯计算，没有挂起点；同一文档的条款序号只在本次切分内分配。
"""

from __future__ import annotations

from typing import Callable, Optional
import logging

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from legaldocs.crud.article import article_crud
from legaldocs.crud.legal_basis import legal_basis_crud
from legaldocs.services.articles.document_text import DocumentTextSource, HttpDocumentTextSource
from legaldocs.services.articles.segmenter import segment
from legaldocs.services.errors import ConflictError, JobFailure, NotFoundError, RequestValidationFailed
from legaldocs.services.jobs.queue import PENDING_STATUSES, Job, JobContext, JobQueue

logger = logging.getLogger("uvicorn.error")

PROGRESS_TEXT_FETCHED = 20
PROGRESS_SEGMENTED = 60
PROGRESS_PERSISTED = 100


class ExtractArticlesPayload(BaseModel):
    legal_basis_id: int


class ExtractArticlesResult(BaseModel):
    legal_basis_id: int
    article_count: int


def find_pending_extraction(queue: JobQueue, legal_basis_id: int) -> Optional[Job]:
    """Return the first not-yet-finished extraction job for a legal basis."""
    for job in queue.get_jobs(PENDING_STATUSES):
        if int(job.payload.get("legal_basis_id", -1)) == int(legal_basis_id):
            return job
    return None


async def submit_extraction(
    db: AsyncSession,
    queue: JobQueue,
    legal_basis_id: int,
) -> Job:
    legal_basis = await legal_basis_crud.get(db, legal_basis_id)
    if not legal_basis:
        raise NotFoundError("LegalBasis not found", errors={"legalBasisId": legal_basis_id})
    if not (legal_basis.url or "").strip():
        raise RequestValidationFailed(
            "LegalBasis has no document to extract articles from",
            errors={"legalBasisId": legal_basis_id},
        )
    pending = find_pending_extraction(queue, legal_basis_id)
    if pending:
        raise ConflictError(
            "Articles extraction already in progress for this LegalBasis",
            errors={"legalBasisId": legal_basis_id, "jobId": pending.id},
        )
    return await queue.add(ExtractArticlesPayload(legal_basis_id=legal_basis_id))


class ArticleExtractionHandler:
    """Worker-side handler; one instance serves the whole `articles` queue."""

    def __init__(
        self,
        session_maker: Callable[[], AsyncSession],
        source: Optional[DocumentTextSource] = None,
    ) -> None:
        self.session_maker = session_maker
        self.source = source or HttpDocumentTextSource()

    async def __call__(self, ctx: JobContext[ExtractArticlesPayload]) -> ExtractArticlesResult:
        legal_basis_id = ctx.payload.legal_basis_id
        async with self.session_maker() as db:
            legal_basis = await legal_basis_crud.get(db, legal_basis_id)
            if not legal_basis:
                raise JobFailure("LegalBasis not found", errors={"legalBasisId": legal_basis_id})

            text = await self.source.fetch_text(legal_basis.url or "")
            await ctx.update_progress(PROGRESS_TEXT_FETCHED)

            records = segment(text)
            if not records:
                raise JobFailure("Article Processing Error", errors={"legalBasisId": legal_basis_id})
            await ctx.update_progress(PROGRESS_SEGMENTED)

            await article_crud.replace_for_legal_basis(db, legal_basis_id, records)
            await ctx.update_progress(PROGRESS_PERSISTED)

        logger.info(
            "extract-articles-done legal_basis_id=%s articles=%s job_id=%s",
            legal_basis_id,
            len(records),
            ctx.job_id,
        )
        return ExtractArticlesResult(legal_basis_id=legal_basis_id, article_count=len(records))
