"""Schemas包初始化"""
from legaldocs.schemas.legal_basis import (
    SubjectCreate,
    SubjectResponse,
    AspectCreate,
    AspectResponse,
    LegalBasisCreate,
    LegalBasisResponse,
)
from legaldocs.schemas.article import (
    ArticleResponse,
    ArticleListResponse,
)
from legaldocs.schemas.job import (
    JobAcceptedResponse,
    PendingJobsResponse,
    JobRemovedResponse,
)
from legaldocs.schemas.req_identification import (
    ReqIdentificationCreate,
    ReqIdentificationCreated,
    ReqIdentificationResponse,
)

__all__ = [
    "SubjectCreate",
    "SubjectResponse",
    "AspectCreate",
    "AspectResponse",
    "LegalBasisCreate",
    "LegalBasisResponse",
    "ArticleResponse",
    "ArticleListResponse",
    "JobAcceptedResponse",
    "PendingJobsResponse",
    "JobRemovedResponse",
    "ReqIdentificationCreate",
    "ReqIdentificationCreated",
    "ReqIdentificationResponse",
]
