"""主题 / 方面模型"""
from sqlalchemy import Column, String, Integer, ForeignKey
from sqlalchemy.orm import relationship

from legaldocs.models.base import Base


class Subject(Base):
    """主题表（如 Ambiental、Seguridad）"""
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_name = Column(String(255), nullable=False)
    abbreviation = Column(String(20), nullable=True)
    order_index = Column(Integer, nullable=False, default=0)

    # 关系
    aspects = relationship("Aspect", back_populates="subject", cascade="all, delete-orphan", lazy="selectin")

    def __repr__(self):
        return f"<Subject {self.subject_name}>"


class Aspect(Base):
    """方面表，每个方面归属一个主题"""
    __tablename__ = "aspects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    aspect_name = Column(String(255), nullable=False)
    abbreviation = Column(String(20), nullable=True)
    order_index = Column(Integer, nullable=False, default=0)

    # 关系
    subject = relationship("Subject", back_populates="aspects")

    def __repr__(self):
        return f"<Aspect {self.aspect_name}>"
