"""条款模型"""
from sqlalchemy import Column, Integer, Text, ForeignKey
from sqlalchemy.orm import relationship

from legaldocs.models.base import Base


class Article(Base):
    """条款表；同一法律依据下 article_order 从 1 连续编号"""
    __tablename__ = "article"

    id = Column(Integer, primary_key=True, autoincrement=True)
    legal_basis_id = Column(Integer, ForeignKey("legal_basis.id", ondelete="CASCADE"), nullable=False, index=True)
    article_name = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    plain_description = Column(Text, nullable=False)
    article_order = Column(Integer, nullable=False, index=True)

    # 关系
    legal_basis = relationship("LegalBasis", back_populates="articles")

    def __repr__(self):
        return f"<Article {self.article_order}: {self.article_name[:50]}>"
