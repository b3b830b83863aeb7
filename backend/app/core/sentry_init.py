from typing import Any

from app.core.config import SentryConfig

_SENSITIVE_KEYS = {
    "password",
    "access_token",
    "refresh_token",
    "token",
    "jwt",
    "authorization",
    "cookie",
    "set-cookie",
    "supabase_key",
    "service_role_key",
}

# 超长字符串多半是稿件正文/上传内容，不送往 Sentry
_MAX_TEXT = 5000


def _scrub(value: Any) -> Any:
    """
    递归去除敏感字段与大段文本。
    """
    if isinstance(value, (bytes, bytearray)):
        return "[Filtered]"
    if isinstance(value, str):
        return "[Filtered]" if len(value) > _MAX_TEXT else value

    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            if str(k).strip().lower() in _SENSITIVE_KEYS:
                out[str(k)] = "[Filtered]"
                continue
            out[str(k)] = _scrub(v)
        return out

    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]

    return value


def _before_send(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    # 中文注释: 不上传请求体（投稿内容、上传文件），只保留诊断所需的 method/url/headers。
    request = event.get("request")
    if isinstance(request, dict):
        headers = request.get("headers")
        if isinstance(headers, dict):
            request["headers"] = {
                k: v for k, v in headers.items() if str(k).strip().lower() not in _SENSITIVE_KEYS
            }
        for key in ("cookies", "data", "body"):
            if key in request:
                request[key] = "[Filtered]"
        event["request"] = request

    for section in ("extra", "contexts"):
        obj = event.get(section)
        if isinstance(obj, dict):
            event[section] = _scrub(obj)

    return event


def init_sentry() -> bool:
    """
    初始化 Sentry。未配置 DSN 或显式禁用时返回 False；调用方负责吞掉初始化异常，不阻塞启动。
    """
    cfg = SentryConfig.from_env()
    if not cfg.enabled or not cfg.dsn:
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    sentry_sdk.init(
        dsn=cfg.dsn,
        environment=cfg.environment,
        traces_sample_rate=cfg.traces_sample_rate,
        integrations=[FastApiIntegration()],
        send_default_pii=False,
        before_send=_before_send,
        max_request_body_size="never",
    )
    return True
