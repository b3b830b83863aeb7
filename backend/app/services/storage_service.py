from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

from app.core.config import WorkflowConfig
from app.lib.api_client import supabase_admin

logger = logging.getLogger("journal.storage")

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


def _normalize_signed_url(resp: object) -> str | None:
    if not isinstance(resp, dict):
        return None
    return str(resp.get("signedUrl") or resp.get("signedURL") or "") or None


def ensure_bucket_exists(*, bucket: str, public: bool = False) -> None:
    """
    上传前确认 bucket 存在；缺失时按私有 bucket 创建（稿件文件只通过签名 URL 访问）。
    """
    storage = supabase_admin.storage
    try:
        storage.get_bucket(bucket)
        return
    except Exception as e:
        # 中文注释: storage3 对不存在的 bucket 抛 StorageException，不区分“缺失”和“无权限”，交给 create 判定
        logger.info("[Storage] bucket %s lookup failed (%s); creating", bucket, e)

    try:
        storage.create_bucket(bucket, options={"public": bool(public)})
    except Exception as e:
        # 并发上传时另一个请求可能已建好
        if not any(word in str(e).lower() for word in ("already", "exists", "duplicate")):
            raise


@dataclass(frozen=True)
class SignedUrl:
    url: str
    expires_in: int


def create_signed_url(*, bucket: str, path: str, expires_in: int) -> SignedUrl:
    signed = supabase_admin.storage.from_(bucket).create_signed_url(path, expires_in)
    url = _normalize_signed_url(signed)
    if not url:
        raise RuntimeError("Failed to create signed url")
    return SignedUrl(url=url, expires_in=expires_in)


def build_storage_path(*, owner_id: str, filename: str) -> str:
    """
    生成稳定的存储引用：uploads/<owner>/<uuid>-<safe filename>
    """
    base = _UNSAFE_FILENAME_RE.sub("-", (filename or "").strip()).strip("-.") or "file"
    return f"uploads/{owner_id}/{uuid4().hex}-{base[:120]}"


def upload_bytes(
    *,
    path: str,
    content: bytes,
    content_type: str,
    bucket: Optional[str] = None,
    upsert: bool = False,
) -> str:
    """
    上传文件并返回存储引用（即 path），供 submissions / 流转附件引用。
    """
    bucket = bucket or WorkflowConfig.from_env().storage_bucket
    ensure_bucket_exists(bucket=bucket, public=False)
    # storage3 期望 header value 为字符串；传 bool 会触发 httpx "Header value must be str or bytes"。
    opts = {"content-type": content_type, "upsert": "true" if upsert else "false"}
    supabase_admin.storage.from_(bucket).upload(path, content, opts)
    return path


def resolve_url(storage_id: Optional[str], *, bucket: Optional[str] = None) -> Optional[str]:
    """
    将存储引用解析为可访问的签名 URL；引用为空时返回 None。
    """
    if not storage_id:
        return None
    cfg = WorkflowConfig.from_env()
    return create_signed_url(
        bucket=bucket or cfg.storage_bucket,
        path=storage_id,
        expires_in=cfg.signed_url_ttl,
    ).url
