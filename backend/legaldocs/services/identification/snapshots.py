"""Typed payload and result of the requirement identification job.

Review note:
- 入队时把需求和法律依据做成快照，worker 不再回查这些实体。
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class TaxonomySnapshot(BaseModel):
    id: int
    name: str
    abbreviation: Optional[str] = None


class LegalBasisSnapshot(BaseModel):
    id: int
    legal_name: str
    abbreviation: Optional[str] = None
    jurisdiction: str
    state: Optional[str] = None
    municipality: Optional[str] = None
    subject: TaxonomySnapshot
    aspects: List[TaxonomySnapshot] = Field(default_factory=list)


class RequirementSnapshot(BaseModel):
    id: int
    requirement_number: str
    requirement_name: str
    mandatory_description: str = ""
    complementary_description: str = ""
    mandatory_keywords: str = ""
    complementary_keywords: str = ""
    subject: TaxonomySnapshot
    aspects: List[TaxonomySnapshot] = Field(default_factory=list)


class ArticleSnapshot(BaseModel):
    id: int
    title: str
    body: str
    order: int


class ReqIdentificationPayload(BaseModel):
    req_identification_id: int
    intelligence_level: Literal["High", "Low"] = "Low"
    legal_bases: List[LegalBasisSnapshot]
    requirements: List[RequirementSnapshot]
    user_id: Optional[int] = None


class ReqIdentificationResult(BaseModel):
    req_identification_id: int
    linked_requirements: int
    linked_articles: int
