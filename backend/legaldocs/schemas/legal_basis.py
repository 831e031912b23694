"""法律依据 / 主题 / 方面相关的Pydantic schemas"""
from pydantic import BaseModel, Field
from typing import List, Optional, Literal
from datetime import date, datetime


class SubjectCreate(BaseModel):
    """创建主题"""
    subject_name: str = Field(..., min_length=1, max_length=255, description="主题名称")
    abbreviation: Optional[str] = Field(None, max_length=20, description="缩写")
    order_index: int = Field(default=0, description="排序顺序")


class AspectCreate(BaseModel):
    """创建方面"""
    subject_id: int = Field(..., description="所属主题ID")
    aspect_name: str = Field(..., min_length=1, max_length=255, description="方面名称")
    abbreviation: Optional[str] = Field(None, max_length=20, description="缩写")
    order_index: int = Field(default=0, description="排序顺序")


class AspectResponse(BaseModel):
    """方面响应"""
    id: int
    subject_id: int
    aspect_name: str
    abbreviation: Optional[str] = None

    class Config:
        from_attributes = True


class SubjectResponse(BaseModel):
    """主题响应"""
    id: int
    subject_name: str
    abbreviation: Optional[str] = None

    class Config:
        from_attributes = True


class LegalBasisCreate(BaseModel):
    """创建法律依据"""
    legal_name: str = Field(..., min_length=1, max_length=255, description="法律依据名称")
    abbreviation: Optional[str] = Field(None, max_length=20)
    classification: str = Field(..., min_length=1, max_length=50, description="Ley / Reglamento / Norma ...")
    jurisdiction: Literal["Federal", "Estatal", "Local"]
    state: Optional[str] = None
    municipality: Optional[str] = None
    url: Optional[str] = Field(None, max_length=500, description="已抽取文本的地址或本地路径")
    last_reform: Optional[date] = None
    subject_id: int
    aspect_ids: List[int] = Field(default_factory=list)


class LegalBasisResponse(BaseModel):
    """法律依据响应"""
    id: int
    legal_name: str
    abbreviation: Optional[str] = None
    classification: str
    jurisdiction: str
    state: Optional[str] = None
    municipality: Optional[str] = None
    url: Optional[str] = None
    last_reform: Optional[date] = None
    subject: SubjectResponse
    aspects: List[AspectResponse] = Field(default_factory=list)
    created_at: datetime

    class Config:
        from_attributes = True
