"""条款的CRUD操作"""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from typing import List, Sequence

from legaldocs.models.article import Article
from legaldocs.services.articles.segmenter import ArticleRecord


class CRUDArticle:
    """条款CRUD操作"""

    async def get_by_legal_basis(self, db: AsyncSession, legal_basis_id: int) -> List[Article]:
        """获取某法律依据下的全部条款（按article_order排序）"""
        result = await db.execute(
            select(Article)
            .where(Article.legal_basis_id == legal_basis_id)
            .order_by(Article.article_order)
        )
        return list(result.scalars().all())

    async def replace_for_legal_basis(
        self,
        db: AsyncSession,
        legal_basis_id: int,
        records: Sequence[ArticleRecord],
    ) -> List[Article]:
        """用新的条款集合整体替换旧集合（同一事务内先删后插）"""
        await db.execute(
            delete(Article).where(Article.legal_basis_id == legal_basis_id)
        )
        db_objs = [
            Article(
                legal_basis_id=legal_basis_id,
                article_name=record.title,
                description=record.body,
                plain_description=record.plain_body,
                article_order=record.order,
            )
            for record in records
        ]
        db.add_all(db_objs)
        await db.commit()
        return db_objs


# 创建实例
article_crud = CRUDArticle()
