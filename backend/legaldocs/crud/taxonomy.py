"""主题和方面的CRUD操作"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Iterable, List

from legaldocs.models.taxonomy import Subject, Aspect
from legaldocs.schemas.legal_basis import SubjectCreate, AspectCreate


class CRUDSubject:
    """主题CRUD操作"""

    async def create(self, db: AsyncSession, obj_in: SubjectCreate) -> Subject:
        """创建主题"""
        db_obj = Subject(**obj_in.model_dump())
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj


class CRUDAspect:
    """方面CRUD操作"""

    async def get_many(self, db: AsyncSession, aspect_ids: Iterable[int]) -> List[Aspect]:
        """按ID批量获取方面，不存在的ID直接忽略"""
        ids = list(aspect_ids)
        if not ids:
            return []
        result = await db.execute(
            select(Aspect).where(Aspect.id.in_(ids)).order_by(Aspect.order_index, Aspect.id)
        )
        return list(result.scalars().all())

    async def create(self, db: AsyncSession, obj_in: AspectCreate) -> Aspect:
        """创建方面"""
        db_obj = Aspect(**obj_in.model_dump())
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj


# 创建实例
subject_crud = CRUDSubject()
aspect_crud = CRUDAspect()
