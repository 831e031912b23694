"""Job queues by job type.

Review note:
- 两个队列：`articles`（条款抽取）和 `req-identification`（需求识别），各自一个 worker 池。
- 在 FastAPI lifespan 里启动和关闭；路由通过 `app.state.jobs` 取到同一个实例。
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Iterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from legaldocs.config import settings
from legaldocs.services.articles.document_text import DocumentTextSource
from legaldocs.services.articles.extraction_job import (
    ArticleExtractionHandler,
    ExtractArticlesPayload,
    ExtractArticlesResult,
)
from legaldocs.services.identification.matcher import RequirementMatcher
from legaldocs.services.identification.orchestrator import ReqIdentificationHandler
from legaldocs.services.identification.snapshots import ReqIdentificationPayload, ReqIdentificationResult
from legaldocs.services.jobs.queue import JobQueue, RateLimiter

EXTRACT_ARTICLES_QUEUE = "articles"
REQ_IDENTIFICATION_QUEUE = "req-identification"


class JobRegistry:
    def __init__(self, queues: Dict[str, JobQueue]) -> None:
        self._queues = dict(queues)

    @classmethod
    def from_settings(
        cls,
        session_maker: Callable[[], AsyncSession],
        *,
        data_dir: str | Path | None = None,
        document_source: Optional[DocumentTextSource] = None,
        matcher: Optional[RequirementMatcher] = None,
    ) -> "JobRegistry":
        root = data_dir if data_dir is not None else settings.JOBS_DATA_DIR
        articles = JobQueue(
            EXTRACT_ARTICLES_QUEUE,
            ArticleExtractionHandler(session_maker, document_source),
            ExtractArticlesPayload,
            ExtractArticlesResult,
            concurrency=settings.CONCURRENCY_EXTRACT_ARTICLES,
            limiter=RateLimiter(settings.LIMIT_EXTRACT_ARTICLES, settings.LIMIT_EXTRACT_ARTICLES_WINDOW_SEC),
            data_dir=root,
            remove_on_complete=settings.JOBS_REMOVE_ON_COMPLETE,
            remove_on_fail=settings.JOBS_REMOVE_ON_FAIL,
        )
        identification = JobQueue(
            REQ_IDENTIFICATION_QUEUE,
            ReqIdentificationHandler(session_maker, matcher),
            ReqIdentificationPayload,
            ReqIdentificationResult,
            concurrency=settings.CONCURRENCY_REQ_IDENTIFICATIONS,
            data_dir=root,
            remove_on_complete=settings.JOBS_REMOVE_ON_COMPLETE,
            remove_on_fail=settings.JOBS_REMOVE_ON_FAIL,
        )
        return cls({articles.name: articles, identification.name: identification})

    def get(self, job_type: str) -> Optional[JobQueue]:
        return self._queues.get(job_type)

    def __iter__(self) -> Iterator[JobQueue]:
        return iter(self._queues.values())

    @property
    def articles(self) -> JobQueue:
        return self._queues[EXTRACT_ARTICLES_QUEUE]

    @property
    def req_identification(self) -> JobQueue:
        return self._queues[REQ_IDENTIFICATION_QUEUE]

    async def start(self) -> None:
        for queue in self:
            await queue.start()

    async def close(self) -> None:
        for queue in self:
            await queue.close()
