"""需求识别模型

Review note:
- `ReqIdentification` 是一次命名的识别请求；状态由后台任务回写 Active -> Completed / Failed。
- 识别结果按 需求 -> 法律依据 -> 条款 三层链接保存，条款带 Obligatory / Complementary 分类。
"""
from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, Table, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from legaldocs.models.base import Base


req_identification_legal_basis = Table(
    "req_identification_legal_basis",
    Base.metadata,
    Column("req_identification_id", Integer, ForeignKey("req_identifications.id", ondelete="CASCADE"), primary_key=True),
    Column("legal_basis_id", Integer, ForeignKey("legal_basis.id", ondelete="RESTRICT"), primary_key=True),
)

req_identification_aspects = Table(
    "req_identification_aspects",
    Base.metadata,
    Column("req_identification_id", Integer, ForeignKey("req_identifications.id", ondelete="CASCADE"), primary_key=True),
    Column("aspect_id", Integer, ForeignKey("aspects.id", ondelete="RESTRICT"), primary_key=True),
)


class ReqIdentification(Base):
    """需求识别表"""
    __tablename__ = "req_identifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False)
    intelligence_level = Column(String(10), nullable=False, default="Low")
    status = Column(String(20), nullable=False, default="Active")
    job_id = Column(String(50), nullable=True)
    user_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # 关系
    subject = relationship("Subject", lazy="selectin")
    legal_bases = relationship("LegalBasis", secondary=req_identification_legal_basis, lazy="selectin")
    aspects = relationship("Aspect", secondary=req_identification_aspects, lazy="selectin")
    requirements = relationship(
        "ReqIdentificationRequirement",
        back_populates="req_identification",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    # 约束
    __table_args__ = (
        CheckConstraint("status IN ('Active', 'Completed', 'Failed')", name="check_identification_status"),
        CheckConstraint("intelligence_level IN ('High', 'Low')", name="check_intelligence_level"),
    )

    def __repr__(self):
        return f"<ReqIdentification {self.name}>"


class ReqIdentificationRequirement(Base):
    """识别中命中的需求"""
    __tablename__ = "req_identification_requirements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    req_identification_id = Column(
        Integer, ForeignKey("req_identifications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    requirement_id = Column(Integer, ForeignKey("requirements.id", ondelete="RESTRICT"), nullable=False)
    requirement_name = Column(String(500), nullable=False)

    # 关系
    req_identification = relationship("ReqIdentification", back_populates="requirements")
    legal_bases = relationship(
        "ReqIdentificationLegalBasis", cascade="all, delete-orphan", lazy="selectin"
    )
    articles = relationship(
        "ReqIdentificationArticle", cascade="all, delete-orphan", lazy="selectin"
    )

    __table_args__ = (
        UniqueConstraint("req_identification_id", "requirement_id", name="uq_identification_requirement"),
    )


class ReqIdentificationLegalBasis(Base):
    """需求与法律依据的链接"""
    __tablename__ = "req_identification_requirement_legal_basis"

    identification_requirement_id = Column(
        Integer, ForeignKey("req_identification_requirements.id", ondelete="CASCADE"), primary_key=True
    )
    legal_basis_id = Column(Integer, ForeignKey("legal_basis.id", ondelete="RESTRICT"), primary_key=True)


class ReqIdentificationArticle(Base):
    """需求、法律依据与条款的链接"""
    __tablename__ = "req_identification_articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    identification_requirement_id = Column(
        Integer, ForeignKey("req_identification_requirements.id", ondelete="CASCADE"), nullable=False, index=True
    )
    legal_basis_id = Column(Integer, ForeignKey("legal_basis.id", ondelete="RESTRICT"), nullable=False)
    article_id = Column(Integer, ForeignKey("article.id", ondelete="RESTRICT"), nullable=False)
    classification = Column(String(20), nullable=False)  # Obligatory / Complementary

    __table_args__ = (
        CheckConstraint("classification IN ('Obligatory', 'Complementary')", name="check_article_classification"),
    )
