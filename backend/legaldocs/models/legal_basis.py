"""法律依据模型

Review note:
- `url` 指向已抽取好的纯文本文档（http(s) 地址或本地路径），OCR/PDF 解析不在本服务内。
- subject / aspects 使用 selectin 预加载，异步会话里可以直接访问。
"""
from sqlalchemy import Column, String, Integer, DateTime, Date, ForeignKey, Table, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from legaldocs.models.base import Base


legal_basis_aspects = Table(
    "legal_basis_aspects",
    Base.metadata,
    Column("legal_basis_id", Integer, ForeignKey("legal_basis.id", ondelete="CASCADE"), primary_key=True),
    Column("aspect_id", Integer, ForeignKey("aspects.id", ondelete="RESTRICT"), primary_key=True),
)


class LegalBasis(Base):
    """法律依据表"""
    __tablename__ = "legal_basis"

    id = Column(Integer, primary_key=True, autoincrement=True)
    legal_name = Column(String(255), nullable=False, unique=True)
    abbreviation = Column(String(20), nullable=True)
    classification = Column(String(50), nullable=False)  # Ley, Reglamento, Norma ...
    jurisdiction = Column(String(20), nullable=False)  # Federal, Estatal, Local
    state = Column(String(255), nullable=True)
    municipality = Column(String(255), nullable=True)
    url = Column(String(500), nullable=True)
    last_reform = Column(Date, nullable=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # 关系
    subject = relationship("Subject", lazy="selectin")
    aspects = relationship("Aspect", secondary=legal_basis_aspects, lazy="selectin", order_by="Aspect.order_index")
    articles = relationship(
        "Article",
        back_populates="legal_basis",
        cascade="all, delete-orphan",
        order_by="Article.article_order",
    )

    # 约束
    __table_args__ = (
        CheckConstraint("jurisdiction IN ('Federal', 'Estatal', 'Local')", name="check_jurisdiction"),
    )

    def __repr__(self):
        return f"<LegalBasis {self.legal_name}>"
