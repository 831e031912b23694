"""需求识别相关的Pydantic schemas

Review note:
- 字段名沿用对外接口的 camelCase。
- `legalBasisIds` 兼容 multipart 表单里以 JSON 字符串提交的写法。
"""
from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional
from datetime import datetime
import json


class ReqIdentificationCreate(BaseModel):
    """创建需求识别"""
    reqIdentificationName: str = Field(..., min_length=1, max_length=255, description="识别名称")
    reqIdentificationDescription: Optional[str] = Field(None, description="识别描述")
    legalBasisIds: List[int] = Field(..., min_length=1, description="法律依据ID列表")
    subjectId: Optional[int] = Field(None, description="主题ID，缺省时取法律依据的共同主题")
    aspectIds: Optional[List[int]] = Field(None, description="方面ID列表，缺省时取法律依据方面的并集")
    intelligenceLevel: Literal["High", "Low"] = Field(default="Low", description="智能等级")

    @field_validator("reqIdentificationName")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("legalBasisIds", mode="before")
    @classmethod
    def parse_legal_basis_ids(cls, v):
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except ValueError as exc:
                raise ValueError("legalBasisIds must be a JSON array of ids") from exc
        if isinstance(v, list):
            # 去重但保持原顺序
            seen = []
            for item in v:
                if item not in seen:
                    seen.append(item)
            return seen
        return v

    @field_validator("aspectIds", mode="before")
    @classmethod
    def parse_aspect_ids(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except ValueError as exc:
                raise ValueError("aspectIds must be a JSON array of ids") from exc
        return v


class ReqIdentificationCreated(BaseModel):
    """创建结果"""
    reqIdentificationId: int
    jobId: str


class IdentifiedArticleResponse(BaseModel):
    legal_basis_id: int
    article_id: int
    classification: str

    class Config:
        from_attributes = True


class IdentifiedLegalBasisResponse(BaseModel):
    legal_basis_id: int

    class Config:
        from_attributes = True


class IdentifiedRequirementResponse(BaseModel):
    requirement_id: int
    requirement_name: str
    legal_bases: List[IdentifiedLegalBasisResponse] = Field(default_factory=list)
    articles: List[IdentifiedArticleResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ReqIdentificationResponse(BaseModel):
    """需求识别详情"""
    id: int
    name: str
    description: Optional[str] = None
    subject_id: int
    intelligence_level: str
    status: str
    job_id: Optional[str] = None
    user_id: Optional[int] = None
    created_at: datetime
    legal_basis_ids: List[int] = Field(default_factory=list)
    aspect_ids: List[int] = Field(default_factory=list)
    requirements: List[IdentifiedRequirementResponse] = Field(default_factory=list)
