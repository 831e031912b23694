"""模型包初始化"""
from legaldocs.models.base import Base
from legaldocs.models.taxonomy import Subject, Aspect
from legaldocs.models.legal_basis import LegalBasis, legal_basis_aspects
from legaldocs.models.article import Article
from legaldocs.models.requirement import Requirement, requirement_aspects
from legaldocs.models.req_identification import (
    ReqIdentification,
    ReqIdentificationRequirement,
    ReqIdentificationLegalBasis,
    ReqIdentificationArticle,
    req_identification_legal_basis,
    req_identification_aspects,
)

__all__ = [
    "Base",
    "Subject",
    "Aspect",
    "LegalBasis",
    "legal_basis_aspects",
    "Article",
    "Requirement",
    "requirement_aspects",
    "ReqIdentification",
    "ReqIdentificationRequirement",
    "ReqIdentificationLegalBasis",
    "ReqIdentificationArticle",
    "req_identification_legal_basis",
    "req_identification_aspects",
]
