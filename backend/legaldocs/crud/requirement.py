"""需求的CRUD操作"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Iterable, List

from legaldocs.models.requirement import Requirement, requirement_aspects


class CRUDRequirement:
    """需求CRUD操作"""

    async def find_by_subject_and_aspects(
        self,
        db: AsyncSession,
        subject_id: int,
        aspect_ids: Iterable[int],
    ) -> List[Requirement]:
        """获取属于该主题且至少关联一个给定方面的需求"""
        ids = list(aspect_ids)
        if not ids:
            return []
        query = (
            select(Requirement)
            .join(requirement_aspects, requirement_aspects.c.requirement_id == Requirement.id)
            .where(Requirement.subject_id == subject_id)
            .where(requirement_aspects.c.aspect_id.in_(ids))
            .order_by(Requirement.id)
            .distinct()
        )
        result = await db.execute(query)
        return list(result.scalars().all())


# 创建实例
requirement_crud = CRUDRequirement()
