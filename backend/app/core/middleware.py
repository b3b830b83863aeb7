import logging
import time

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.errors import WorkflowError

# === 结构化日志配置 ===
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("journal")


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    """
    业务错误 -> {"detail", "type"}；4xx 只记 INFO，避免把正常的权限/校验拒绝当成告警。
    """
    logger.info(
        "[Error] %s %s -> %s %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.error_type,
        exc.detail,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "type": exc.error_type},
        headers=getattr(exc, "headers", None),
    )


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """
    请求日志 + 兜底异常捕获：未处理异常统一返回 500 JSON，不泄露内部细节。
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            logger.info(
                "Method: %s Path: %s Status: %s Time: %.4fs",
                request.method,
                request.url.path,
                response.status_code,
                process_time,
            )
            return response
        except HTTPException as exc:
            return JSONResponse(
                status_code=exc.status_code,
                content={"detail": exc.detail, "type": getattr(exc, "error_type", "http_exception")},
            )
        except Exception as e:
            logger.error("Unhandled Exception: %s", e, exc_info=True)
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error", "type": "server_error"},
            )
