import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# 在应用启动前加载环境变量
load_dotenv()

logger = logging.getLogger("journal")

_SENTRY_ENABLED = False
try:
    from app.core.sentry_init import init_sentry

    _SENTRY_ENABLED = init_sentry()
    if _SENTRY_ENABLED:
        logger.info("[sentry] enabled")
except Exception as e:
    # 中文注释: Sentry 任何异常不得阻塞启动
    logger.warning("[sentry] init failed (ignored): %s", e)

from app.api.v1 import articles, files, issues, manuscripts, papers, reviews, templates, users
from app.api.v1.admin import users as admin_users
from app.core.config import get_frontend_origins
from app.core.errors import WorkflowError
from app.core.middleware import ExceptionHandlerMiddleware, workflow_error_handler

app = FastAPI(
    title="Journal Portal API",
    description="Manuscript submission, editorial workflow and publication backend",
    version="1.0.0",
)

# === 中间件配置 ===
# 1. 跨域资源共享 (CORS) - 允许前端访问
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_frontend_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 2. 请求日志 + 兜底异常处理
app.add_middleware(ExceptionHandlerMiddleware)

# 3. 业务错误统一渲染为 {"detail", "type"}
app.add_exception_handler(WorkflowError, workflow_error_handler)

# === 路由注册 ===
app.include_router(users.router, prefix="/api/v1")
app.include_router(admin_users.router, prefix="/api/v1")
app.include_router(manuscripts.router, prefix="/api/v1")
app.include_router(reviews.router, prefix="/api/v1")
app.include_router(issues.router, prefix="/api/v1")
app.include_router(articles.router, prefix="/api/v1")
app.include_router(templates.router, prefix="/api/v1")
app.include_router(papers.router, prefix="/api/v1")
app.include_router(files.router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": "Journal Portal API is running", "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn

    from app.core.config import ServerConfig

    server = ServerConfig.from_env()
    uvicorn.run("main:app", host=server.host, port=server.port, reload=server.reload)
