"""法律依据的CRUD操作"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Iterable, List, Optional

from legaldocs.models.legal_basis import LegalBasis
from legaldocs.models.taxonomy import Aspect
from legaldocs.schemas.legal_basis import LegalBasisCreate


class CRUDLegalBasis:
    """法律依据CRUD操作"""

    async def get(self, db: AsyncSession, legal_basis_id: int) -> Optional[LegalBasis]:
        """获取单个法律依据"""
        result = await db.execute(
            select(LegalBasis).where(LegalBasis.id == legal_basis_id)
        )
        return result.scalar_one_or_none()

    async def get_many(self, db: AsyncSession, legal_basis_ids: Iterable[int]) -> List[LegalBasis]:
        """按ID批量获取，结果顺序与传入顺序一致，不存在的ID不出现在结果中"""
        ids = list(legal_basis_ids)
        if not ids:
            return []
        result = await db.execute(
            select(LegalBasis).where(LegalBasis.id.in_(ids))
        )
        found = {lb.id: lb for lb in result.scalars().all()}
        return [found[i] for i in ids if i in found]

    async def create(self, db: AsyncSession, obj_in: LegalBasisCreate) -> LegalBasis:
        """创建法律依据并关联方面"""
        data = obj_in.model_dump(exclude={"aspect_ids"})
        db_obj = LegalBasis(**data)
        if obj_in.aspect_ids:
            result = await db.execute(
                select(Aspect).where(Aspect.id.in_(obj_in.aspect_ids))
            )
            db_obj.aspects = list(result.scalars().all())
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj


# 创建实例
legal_basis_crud = CRUDLegalBasis()
