import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    return lowered in {"1", "true", "yes", "y", "on"}


def _env_int(key: str, default: int) -> int:
    raw = (os.environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    raw = (os.environ.get(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class AppConfig:
    """
    Application environment config.

    中文注释:
    - Supabase 连接信息统一从这里读取，api_client 不再直接散读环境变量。
    - SUPABASE_ANON_KEY 与 SUPABASE_KEY 两个历史变量名都支持，优先前者。
    """

    env: str  # 'development', 'staging', 'production'
    is_staging: bool
    supabase_url: str
    supabase_key: str
    supabase_anon_key: str
    jwt_secret: str

    @staticmethod
    def from_env() -> "AppConfig":
        env = (os.environ.get("APP_ENV") or "development").strip().lower()

        supabase_url = (os.environ.get("SUPABASE_URL") or "").strip()
        supabase_key = (os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
        anon_key = (
            os.environ.get("SUPABASE_ANON_KEY") or os.environ.get("SUPABASE_KEY") or ""
        ).strip()
        jwt_secret = os.environ.get("SUPABASE_JWT_SECRET", "mock-secret-replace-later")

        return AppConfig(
            env=env,
            is_staging=env == "staging",
            supabase_url=supabase_url,
            supabase_key=supabase_key,
            supabase_anon_key=anon_key,
            jwt_secret=jwt_secret,
        )


# Global Config Instance
app_config = AppConfig.from_env()


@dataclass(frozen=True)
class WorkflowConfig:
    """
    稿件流转相关的可调参数。

    中文注释:
    - auto_queue_submissions: 投稿后是否由 system 自动推进到 pending_for_review（默认关闭，
      投稿停留在 submitted，由编辑手动接收）。
    - storage_bucket / signed_url_ttl: 稿件、版权文件与流转附件所在的 Storage bucket。
    """

    auto_queue_submissions: bool
    storage_bucket: str
    signed_url_ttl: int
    search_result_limit: int
    latest_articles_limit: int

    @staticmethod
    def from_env() -> "WorkflowConfig":
        bucket = (os.environ.get("STORAGE_BUCKET") or "manuscripts").strip() or "manuscripts"
        return WorkflowConfig(
            auto_queue_submissions=_env_bool("AUTO_QUEUE_SUBMISSIONS", False),
            storage_bucket=bucket,
            signed_url_ttl=max(_env_int("SIGNED_URL_TTL_SECONDS", 3600), 60),
            search_result_limit=max(_env_int("SEARCH_RESULT_LIMIT", 20), 1),
            latest_articles_limit=max(_env_int("LATEST_ARTICLES_LIMIT", 10), 1),
        )


@dataclass(frozen=True)
class SentryConfig:
    enabled: bool
    dsn: Optional[str]
    environment: str
    traces_sample_rate: float

    @staticmethod
    def from_env() -> "SentryConfig":
        dsn = (os.environ.get("SENTRY_DSN") or "").strip() or None
        environment = (
            os.environ.get("SENTRY_ENVIRONMENT") or os.environ.get("APP_ENV") or "development"
        ).strip()
        rate = _env_float("SENTRY_TRACES_SAMPLE_RATE", 0.0)
        return SentryConfig(
            enabled=_env_bool("SENTRY_ENABLED", bool(dsn)),
            dsn=dsn,
            environment=environment,
            traces_sample_rate=min(max(rate, 0.0), 1.0),
        )


@dataclass(frozen=True)
class ServerConfig:
    """
    本地直接运行 main.py 时的 uvicorn 参数（部署时由进程管理器传参）。
    """

    host: str
    port: int
    reload: bool

    @staticmethod
    def from_env() -> "ServerConfig":
        return ServerConfig(
            host=(os.environ.get("HOST") or "").strip() or "0.0.0.0",
            port=_env_int("PORT", 8000),
            reload=_env_bool("UVICORN_RELOAD", False),
        )


def get_frontend_origins() -> list[str]:
    """
    解析允许跨域的前端 Origins。

    中文注释:
    - 本地默认: http://localhost:3000
    - 生产/预发: 通过 FRONTEND_ORIGIN 或 FRONTEND_ORIGINS 注入（逗号分隔）
    """
    origins: list[str] = []

    single = (os.environ.get("FRONTEND_ORIGIN") or "").strip()
    if single:
        origins.append(single.rstrip("/"))

    many = (os.environ.get("FRONTEND_ORIGINS") or "").strip()
    if many:
        for part in many.split(","):
            o = (part or "").strip().rstrip("/")
            if o:
                origins.append(o)

    if not origins:
        origins = ["http://localhost:3000"]

    # 去重保持顺序
    return list(dict.fromkeys(origins))
