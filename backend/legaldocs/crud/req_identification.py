"""需求识别的CRUD操作

Review note:
- 创建时一次性写入识别记录及其法律依据 / 方面链接。
- 后台任务通过 link_* 方法逐条写入识别结果，状态最后由 set_status 回写。
"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from typing import Iterable, Optional, Sequence

from legaldocs.models.legal_basis import LegalBasis
from legaldocs.models.taxonomy import Aspect
from legaldocs.models.req_identification import (
    ReqIdentification,
    ReqIdentificationRequirement,
    ReqIdentificationLegalBasis,
    ReqIdentificationArticle,
)


class CRUDReqIdentification:
    """需求识别CRUD操作"""

    async def get(self, db: AsyncSession, req_identification_id: int) -> Optional[ReqIdentification]:
        """获取单个识别记录"""
        result = await db.execute(
            select(ReqIdentification).where(ReqIdentification.id == req_identification_id)
        )
        return result.scalar_one_or_none()

    async def exists_by_name(self, db: AsyncSession, name: str) -> bool:
        """名称是否已被使用"""
        result = await db.execute(
            select(ReqIdentification.id).where(ReqIdentification.name == name)
        )
        return result.first() is not None

    async def create(
        self,
        db: AsyncSession,
        *,
        name: str,
        description: Optional[str],
        subject_id: int,
        intelligence_level: str,
        legal_bases: Sequence[LegalBasis],
        aspects: Sequence[Aspect],
        user_id: Optional[int] = None,
    ) -> ReqIdentification:
        """创建识别记录（状态为 Active）"""
        db_obj = ReqIdentification(
            name=name,
            description=description,
            subject_id=subject_id,
            intelligence_level=intelligence_level,
            status="Active",
            user_id=user_id,
        )
        db_obj.legal_bases = list(legal_bases)
        db_obj.aspects = list(aspects)
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def set_job_id(self, db: AsyncSession, req_identification_id: int, job_id: str) -> None:
        await db.execute(
            update(ReqIdentification)
            .where(ReqIdentification.id == req_identification_id)
            .values(job_id=job_id)
        )
        await db.commit()

    async def set_status(self, db: AsyncSession, req_identification_id: int, status: str) -> bool:
        """回写识别状态（Active / Completed / Failed）"""
        result = await db.execute(
            update(ReqIdentification)
            .where(ReqIdentification.id == req_identification_id)
            .values(status=status)
        )
        await db.commit()
        return result.rowcount > 0

    async def link_requirement(
        self,
        db: AsyncSession,
        req_identification_id: int,
        requirement_id: int,
        requirement_name: str,
    ) -> ReqIdentificationRequirement:
        """链接需求；同一识别里重复链接时返回已有记录"""
        result = await db.execute(
            select(ReqIdentificationRequirement).where(
                ReqIdentificationRequirement.req_identification_id == req_identification_id,
                ReqIdentificationRequirement.requirement_id == requirement_id,
            )
        )
        db_obj = result.scalar_one_or_none()
        if db_obj is None:
            db_obj = ReqIdentificationRequirement(
                req_identification_id=req_identification_id,
                requirement_id=requirement_id,
                requirement_name=requirement_name,
            )
            db.add(db_obj)
        else:
            db_obj.requirement_name = requirement_name
        await db.flush()
        return db_obj

    async def link_legal_bases(
        self,
        db: AsyncSession,
        identification_requirement_id: int,
        legal_basis_ids: Iterable[int],
    ) -> None:
        for legal_basis_id in legal_basis_ids:
            await db.merge(
                ReqIdentificationLegalBasis(
                    identification_requirement_id=identification_requirement_id,
                    legal_basis_id=legal_basis_id,
                )
            )
        await db.flush()

    async def link_article(
        self,
        db: AsyncSession,
        identification_requirement_id: int,
        legal_basis_id: int,
        article_id: int,
        classification: str,
    ) -> ReqIdentificationArticle:
        db_obj = ReqIdentificationArticle(
            identification_requirement_id=identification_requirement_id,
            legal_basis_id=legal_basis_id,
            article_id=article_id,
            classification=classification,
        )
        db.add(db_obj)
        await db.flush()
        return db_obj


# 创建实例
req_identification_crud = CRUDReqIdentification()
