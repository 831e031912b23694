"""条款相关的Pydantic schemas"""
from pydantic import BaseModel, Field
from typing import List


class ArticleResponse(BaseModel):
    """条款响应"""
    id: int
    legal_basis_id: int
    article_name: str
    description: str
    plain_description: str
    article_order: int

    class Config:
        from_attributes = True


class ArticleListResponse(BaseModel):
    """条款列表响应（按 article_order 排序）"""
    legal_basis_id: int
    articles: List[ArticleResponse] = Field(default_factory=list)
