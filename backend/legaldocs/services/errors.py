"""Service-level errors.

Review note:
- 服务层只抛这些异常，HTTP 状态码由 `status_code` 决定，路由层统一转换。
- 任务受理之后的失败不会再以请求错误出现，只记录在任务上（见 JobFailure）。
"""

from __future__ import annotations

from typing import Any, Optional


class ServiceError(RuntimeError):
    """Expected service error carrying an HTTP status."""

    status_code = 500

    def __init__(self, message: str, errors: Optional[Any] = None, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict:
        payload: dict = {"message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class RequestValidationFailed(ServiceError):
    """Raised when a payload fails schema coercion."""

    status_code = 400


class NotFoundError(ServiceError):
    """Raised when a referenced entity or job does not exist."""

    status_code = 404


class ConflictError(ServiceError):
    """Raised on duplicates or on operations that clash with a job's state."""

    status_code = 409


class StructuralInconsistencyError(ServiceError):
    """Raised when a set of legal bases cannot be identified together."""

    status_code = 400


class JobFailure(ServiceError):
    """Raised inside a worker; recorded on the job instead of surfacing to a request."""
