from typing import Any, Callable, Optional

from supabase import Client, create_client

from app.core.config import app_config


class _LazySupabaseClient:
    """
    延迟初始化 Supabase Client，避免在 import 时因为缺少环境变量导致整个模块导入失败。

    中文注释:
    - 单元测试会 monkeypatch 各模块里的 `supabase`/`supabase_admin`，因此这里必须保证“可导入”。
    - 真实运行时，如果缺少 URL/KEY，在第一次访问 client 时抛出清晰错误即可。
    """

    def __init__(self, factory: Callable[[], Client], *, name: str):
        self._factory = factory
        self._name = name
        self._client: Optional[Client] = None

    def _get(self) -> Client:
        if self._client is None:
            self._client = self._factory()
        return self._client

    def __getattr__(self, item: str) -> Any:
        return getattr(self._get(), item)

    def __repr__(self) -> str:
        state = "ready" if self._client is not None else "lazy"
        return f"<{self._name} supabase client ({state})>"


def _require_supabase_url() -> str:
    if not app_config.supabase_url:
        raise RuntimeError("SUPABASE_URL is required")
    return app_config.supabase_url


def _require_anon_key() -> str:
    if not app_config.supabase_anon_key:
        raise RuntimeError("SUPABASE_ANON_KEY or SUPABASE_KEY is required")
    return app_config.supabase_anon_key


def _create_supabase() -> Client:
    return create_client(_require_supabase_url(), _require_anon_key())


def _create_supabase_admin() -> Client:
    # 中文注释: 流转 RPC 与审计表都受 RLS 保护，服务端写入统一走 service_role。
    admin_key = app_config.supabase_key or app_config.supabase_anon_key
    if not admin_key:
        raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_KEY) is required")
    return create_client(_require_supabase_url(), admin_key)


# === 公共读 Supabase 客户端（anon，受 RLS 约束） ===
supabase: Client = _LazySupabaseClient(_create_supabase, name="supabase")  # type: ignore[assignment]

# === 服务端 Supabase 客户端（service_role） ===
supabase_admin: Client = _LazySupabaseClient(_create_supabase_admin, name="supabase_admin")  # type: ignore[assignment]


def extract_data(resp: Any) -> Any:
    """
    兼容 supabase-py 不同版本的返回形态（APIResponse / (error, data) 元组 / None）。
    """
    if resp is None:
        return None
    data = getattr(resp, "data", None)
    if data is not None:
        return data
    if isinstance(resp, tuple) and len(resp) == 2:
        return resp[1]
    return None


def extract_rows(resp: Any) -> list[dict[str, Any]]:
    data = extract_data(resp)
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return [data]
    return []


def is_invalid_uuid_error(exc: Exception) -> bool:
    """
    PostgREST 对 uuid 列传入非法字面量时返回 22P02（invalid_text_representation）。

    中文注释: 按主键查询时该错误等价于“记录不存在”，调用方据此返回 404 而不是 500。
    """
    return str(getattr(exc, "code", "") or "") == "22P02"
