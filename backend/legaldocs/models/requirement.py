"""需求模型"""
from sqlalchemy import Column, String, Integer, Text, ForeignKey, Table
from sqlalchemy.orm import relationship

from legaldocs.models.base import Base


requirement_aspects = Table(
    "requirement_aspects",
    Base.metadata,
    Column("requirement_id", Integer, ForeignKey("requirements.id", ondelete="CASCADE"), primary_key=True),
    Column("aspect_id", Integer, ForeignKey("aspects.id", ondelete="RESTRICT"), primary_key=True),
)


class Requirement(Base):
    """合规需求表，关联一个主题和一个或多个方面"""
    __tablename__ = "requirements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False, index=True)
    requirement_number = Column(String(255), nullable=False)
    requirement_name = Column(String(255), nullable=False)
    mandatory_description = Column(Text, nullable=False, default="")
    complementary_description = Column(Text, nullable=False, default="")
    mandatory_keywords = Column(Text, nullable=False, default="")
    complementary_keywords = Column(Text, nullable=False, default="")
    requirement_condition = Column(String(30), nullable=False, default="Pendiente")
    evidence = Column(String(30), nullable=False, default="Documento")
    periodicity = Column(String(30), nullable=False, default="Anual")
    jurisdiction = Column(String(20), nullable=False, default="Federal")
    state = Column(String(255), nullable=True)
    municipality = Column(String(255), nullable=True)

    # 关系
    subject = relationship("Subject", lazy="selectin")
    aspects = relationship("Aspect", secondary=requirement_aspects, lazy="selectin")

    def __repr__(self):
        return f"<Requirement {self.requirement_number}>"
