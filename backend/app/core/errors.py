from __future__ import annotations

from typing import Any

from fastapi import HTTPException


class WorkflowError(HTTPException):
    """
    业务错误基类。

    中文注释:
    - 继承 HTTPException，服务层直接抛出即可，路由层无需再做一次转换。
    - error_type 会随响应体一起返回（{"detail", "type"}），前端据此展示不同提示。
    """

    status_code_default = 400
    error_type = "workflow_error"

    def __init__(self, detail: Any = None, *, status_code: int | None = None) -> None:
        super().__init__(status_code=status_code or self.status_code_default, detail=detail)


class NotFoundError(WorkflowError):
    status_code_default = 404
    error_type = "not_found"


class UnauthorizedError(WorkflowError):
    status_code_default = 401
    error_type = "unauthorized"


class ForbiddenError(WorkflowError):
    status_code_default = 403
    error_type = "forbidden"


class InvalidTransitionError(WorkflowError):
    status_code_default = 409
    error_type = "invalid_transition"


class ValidationFailedError(WorkflowError):
    status_code_default = 422
    error_type = "validation_error"
