"""Requirement identification: request validation and the background job.

Review note:
- 校验按固定顺序短路：法律依据存在 -> 主题一致 -> 管辖一致（州 / 市） -> 名称唯一 -> 有可用需求。
- 校验通过后落库（Active）并入队；入队之后的任何失败都只体现在任务和识别状态上。
- 任务内不重新校验实体，提交后被删除的实体只会表现为任务失败。
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar
import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from legaldocs.config import settings
from legaldocs.crud.article import article_crud
from legaldocs.crud.legal_basis import legal_basis_crud
from legaldocs.crud.req_identification import req_identification_crud
from legaldocs.crud.requirement import requirement_crud
from legaldocs.crud.taxonomy import aspect_crud
from legaldocs.models import Aspect, LegalBasis, Requirement
from legaldocs.schemas.req_identification import ReqIdentificationCreate
from legaldocs.services.errors import (
    ConflictError,
    JobFailure,
    NotFoundError,
    StructuralInconsistencyError,
)
from legaldocs.services.identification.matcher import RequirementMatcher, build_matcher
from legaldocs.services.identification.snapshots import (
    ArticleSnapshot,
    LegalBasisSnapshot,
    ReqIdentificationPayload,
    ReqIdentificationResult,
    RequirementSnapshot,
    TaxonomySnapshot,
)
from legaldocs.services.jobs.queue import JobContext, JobQueue

logger = logging.getLogger("uvicorn.error")

T = TypeVar("T")

STATUS_ACTIVE = "Active"
STATUS_COMPLETED = "Completed"
STATUS_FAILED = "Failed"


def _unique(values: Iterable[Optional[T]]) -> List[T]:
    out: List[T] = []
    for value in values:
        if value and value not in out:
            out.append(value)
    return out


# ========== 校验 ==========

def _check_same_subject(legal_bases: Sequence[LegalBasis], subject_id: Optional[int]) -> int:
    subject_ids = _unique(lb.subject_id for lb in legal_bases)
    if len(subject_ids) != 1 or (subject_id is not None and subject_ids[0] != subject_id):
        raise StructuralInconsistencyError(
            "All selected legal bases must have the same subject",
            errors={"subjectIds": subject_ids},
        )
    return subject_ids[0]


def _check_same_jurisdiction(legal_bases: Sequence[LegalBasis]) -> str:
    jurisdictions = _unique(lb.jurisdiction for lb in legal_bases)
    if len(jurisdictions) != 1:
        raise StructuralInconsistencyError(
            "All selected legal bases must have the same jurisdiction",
            errors={"jurisdictions": jurisdictions},
        )
    jurisdiction = jurisdictions[0]
    if jurisdiction in ("Estatal", "Local"):
        states = _unique(lb.state for lb in legal_bases)
        if len(states) > 1:
            raise StructuralInconsistencyError(
                "All selected legal bases must have the same state",
                errors={"states": states},
            )
    if jurisdiction == "Local":
        municipalities = _unique(lb.municipality for lb in legal_bases)
        if len(municipalities) > 1:
            raise StructuralInconsistencyError(
                "All selected legal bases must have the same municipality",
                errors={"municipalities": municipalities},
            )
    return jurisdiction


async def _resolve_aspects(
    db: AsyncSession,
    legal_bases: Sequence[LegalBasis],
    subject_id: int,
    aspect_ids: Optional[List[int]],
) -> List[Aspect]:
    if aspect_ids is None:
        aspects: Dict[int, Aspect] = {}
        for lb in legal_bases:
            for aspect in lb.aspects:
                aspects.setdefault(aspect.id, aspect)
        return list(aspects.values())

    wanted = _unique(aspect_ids)
    aspects = await aspect_crud.get_many(db, wanted)
    found = {a.id for a in aspects}
    missing = [i for i in wanted if i not in found]
    if missing:
        raise NotFoundError("Aspect not found", errors={"notFoundIds": missing})
    foreign = [a.id for a in aspects if a.subject_id != subject_id]
    if foreign:
        raise StructuralInconsistencyError(
            "All selected aspects must belong to the subject",
            errors={"aspectIds": foreign},
        )
    return aspects


# ========== 快照 ==========

def _legal_basis_snapshot(lb: LegalBasis) -> LegalBasisSnapshot:
    return LegalBasisSnapshot(
        id=lb.id,
        legal_name=lb.legal_name,
        abbreviation=lb.abbreviation,
        jurisdiction=lb.jurisdiction,
        state=lb.state,
        municipality=lb.municipality,
        subject=TaxonomySnapshot(id=lb.subject.id, name=lb.subject.subject_name, abbreviation=lb.subject.abbreviation),
        aspects=[
            TaxonomySnapshot(id=a.id, name=a.aspect_name, abbreviation=a.abbreviation)
            for a in lb.aspects
        ],
    )


def _requirement_snapshot(req: Requirement) -> RequirementSnapshot:
    return RequirementSnapshot(
        id=req.id,
        requirement_number=req.requirement_number,
        requirement_name=req.requirement_name,
        mandatory_description=req.mandatory_description or "",
        complementary_description=req.complementary_description or "",
        mandatory_keywords=req.mandatory_keywords or "",
        complementary_keywords=req.complementary_keywords or "",
        subject=TaxonomySnapshot(id=req.subject.id, name=req.subject.subject_name, abbreviation=req.subject.abbreviation),
        aspects=[
            TaxonomySnapshot(id=a.id, name=a.aspect_name, abbreviation=a.abbreviation)
            for a in req.aspects
        ],
    )


# ========== 提交 ==========

async def create_req_identification(
    db: AsyncSession,
    queue: JobQueue,
    request: ReqIdentificationCreate,
    user_id: Optional[int] = None,
) -> Dict[str, object]:
    """Validate a request, persist the identification and enqueue its job."""
    legal_bases = await legal_basis_crud.get_many(db, request.legalBasisIds)
    found_ids = {lb.id for lb in legal_bases}
    missing = [i for i in request.legalBasisIds if i not in found_ids]
    if missing:
        raise NotFoundError("LegalBasis not found for IDs", errors={"notFoundIds": missing})

    subject_id = _check_same_subject(legal_bases, request.subjectId)
    _check_same_jurisdiction(legal_bases)

    if await req_identification_crud.exists_by_name(db, request.reqIdentificationName):
        raise ConflictError(
            "Requirement Identification name already exists",
            errors={"reqIdentificationName": request.reqIdentificationName},
        )

    aspects = await _resolve_aspects(db, legal_bases, subject_id, request.aspectIds)
    requirements = await requirement_crud.find_by_subject_and_aspects(db, subject_id, [a.id for a in aspects])
    if not requirements:
        raise StructuralInconsistencyError(
            "Requirements not found",
            errors={"subjectId": subject_id, "aspectIds": [a.id for a in aspects]},
        )

    payload = ReqIdentificationPayload(
        req_identification_id=0,
        intelligence_level=request.intelligenceLevel,
        legal_bases=[_legal_basis_snapshot(lb) for lb in legal_bases],
        requirements=[_requirement_snapshot(r) for r in requirements],
        user_id=user_id,
    )

    record = await req_identification_crud.create(
        db,
        name=request.reqIdentificationName,
        description=request.reqIdentificationDescription,
        subject_id=subject_id,
        intelligence_level=request.intelligenceLevel,
        legal_bases=legal_bases,
        aspects=aspects,
        user_id=user_id,
    )
    payload.req_identification_id = record.id

    try:
        job = await queue.add(payload)
    except Exception:
        await req_identification_crud.set_status(db, record.id, STATUS_FAILED)
        raise
    await req_identification_crud.set_job_id(db, record.id, job.id)

    logger.info(
        "req-identification-created id=%s job_id=%s legal_bases=%s requirements=%s level=%s",
        record.id,
        job.id,
        len(legal_bases),
        len(requirements),
        request.intelligenceLevel,
    )
    return {"reqIdentificationId": record.id, "jobId": job.id}


# ========== 任务 ==========

def select_legal_bases(
    requirement: RequirementSnapshot,
    legal_bases: Sequence[LegalBasisSnapshot],
) -> List[LegalBasisSnapshot]:
    """Legal bases sharing the requirement's subject and at least one of its aspects."""
    wanted = {a.id for a in requirement.aspects}
    return [
        lb
        for lb in legal_bases
        if lb.subject.id == requirement.subject.id and any(a.id in wanted for a in lb.aspects)
    ]


def build_requirement_name(
    requirement: RequirementSnapshot,
    legal_bases: Sequence[LegalBasisSnapshot],
) -> str:
    """e.g. "AMB - AG, RS - Jalisco - Guadalajara - 12"."""
    parts = [
        ", ".join(_unique(lb.subject.abbreviation for lb in legal_bases)),
        ", ".join(_unique(a.abbreviation for lb in legal_bases for a in lb.aspects)),
        ", ".join(_unique(lb.state for lb in legal_bases)),
        ", ".join(_unique(lb.municipality for lb in legal_bases)),
        requirement.requirement_number,
    ]
    return " - ".join(_unique(str(p).strip() for p in parts))


class ReqIdentificationHandler:
    """Worker-side handler for the `req-identification` queue."""

    def __init__(
        self,
        session_maker: Callable[[], AsyncSession],
        matcher: Optional[RequirementMatcher] = None,
        timeout_sec: Optional[float] = None,
    ) -> None:
        self.session_maker = session_maker
        self.matcher = matcher or build_matcher()
        self.timeout_sec = float(timeout_sec if timeout_sec is not None else settings.MATCHER_TIMEOUT_SEC)

    async def __call__(self, ctx: JobContext[ReqIdentificationPayload]) -> ReqIdentificationResult:
        identification_id = ctx.payload.req_identification_id
        try:
            result = await self._identify(ctx)
        except Exception:
            await self._set_status(identification_id, STATUS_FAILED)
            raise
        await self._set_status(identification_id, STATUS_COMPLETED)
        logger.info(
            "req-identification-done id=%s requirements=%s articles=%s job_id=%s",
            identification_id,
            result.linked_requirements,
            result.linked_articles,
            ctx.job_id,
        )
        return result

    async def _set_status(self, identification_id: int, status: str) -> None:
        async with self.session_maker() as db:
            await req_identification_crud.set_status(db, identification_id, status)

    async def _match(
        self,
        requirement: RequirementSnapshot,
        legal_basis: LegalBasisSnapshot,
        articles: List[ArticleSnapshot],
        intelligence_level: str,
    ):
        # 匹配器逐条分类：每条条款一份 MATCHER_TIMEOUT_SEC 预算
        budget = self.timeout_sec * max(1, len(articles))
        try:
            return await asyncio.wait_for(
                self.matcher.match(requirement, legal_basis, articles, intelligence_level),
                timeout=budget,
            )
        except asyncio.TimeoutError as exc:
            raise JobFailure(
                f"Requirement matcher timed out after {budget:g}s",
                errors={"requirementId": requirement.id, "legalBasisId": legal_basis.id},
            ) from exc

    async def _identify(self, ctx: JobContext[ReqIdentificationPayload]) -> ReqIdentificationResult:
        payload = ctx.payload
        total = len(payload.requirements)
        linked_requirements = 0
        linked_articles = 0

        async with self.session_maker() as db:
            for index, requirement in enumerate(payload.requirements, start=1):
                matching = select_legal_bases(requirement, payload.legal_bases)
                if matching:
                    link = await req_identification_crud.link_requirement(
                        db,
                        payload.req_identification_id,
                        requirement.id,
                        build_requirement_name(requirement, matching),
                    )
                    await req_identification_crud.link_legal_bases(db, link.id, [lb.id for lb in matching])
                    for legal_basis in matching:
                        articles = [
                            ArticleSnapshot(
                                id=a.id,
                                title=a.article_name,
                                body=a.plain_description or a.description,
                                order=a.article_order,
                            )
                            for a in await article_crud.get_by_legal_basis(db, legal_basis.id)
                        ]
                        if not articles:
                            continue
                        matches = await self._match(requirement, legal_basis, articles, payload.intelligence_level)
                        for m in matches:
                            await req_identification_crud.link_article(
                                db, link.id, legal_basis.id, m.article_id, m.classification
                            )
                        linked_articles += len(matches)
                    await db.commit()
                    linked_requirements += 1
                await ctx.update_progress(round(index * 100 / total) if total else 100)

        return ReqIdentificationResult(
            req_identification_id=payload.req_identification_id,
            linked_requirements=linked_requirements,
            linked_articles=linked_articles,
        )
