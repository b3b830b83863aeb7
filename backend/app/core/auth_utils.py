import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.core.config import app_config
from app.core.errors import UnauthorizedError
from app.lib.api_client import supabase

# === Auth 核心配置 ===
# 中文注释:
# 1. 密钥来源于 Supabase Project Settings 中的 JWT Secret。
# 2. 我们使用 HTTPBearer 作为验证头；缺失 token 统一返回 401（而不是 FastAPI 默认的 403）。
ALGORITHM = "HS256"

logger = logging.getLogger("journal.auth")

security = HTTPBearer(auto_error=False)


def _identity_from_claims(payload: dict) -> dict:
    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid identity payload")
    metadata = payload.get("user_metadata") or {}
    name = payload.get("name") or metadata.get("full_name") or metadata.get("name")
    return {"id": str(user_id), "email": payload.get("email"), "name": name}


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    解码并验证 Supabase JWT Token，返回 {"id": subject, "email", "name"}。
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Authentication required")

    token = credentials.credentials
    try:
        # 中文注释:
        # 1. Supabase 新版可能使用 JWT Signing Keys（非 HS256），需要走 Auth API 获取用户。
        # 2. 若仍为 HS256，则用本地密钥校验以减少外部请求。
        header = jwt.get_unverified_header(token)
        if header.get("alg") == ALGORITHM and app_config.jwt_secret:
            payload = jwt.decode(
                token,
                app_config.jwt_secret,
                algorithms=[ALGORITHM],
                audience="authenticated",
            )
            return _identity_from_claims(payload)
    except JWTError as e:
        logger.info("JWT verification failed: %s", e)
        raise UnauthorizedError("Token is invalid or expired")

    # fallback: 通过 Supabase Auth API 校验并获取用户信息
    try:
        response = supabase.auth.get_user(token)
        user = response.user if response else None
    except Exception as e:
        # 中文注释: 若 Supabase 配置缺失/网络异常，不应返回 500 泄露内部错误，统一视为鉴权失败
        logger.warning("Supabase auth fallback failed: %s", e)
        raise UnauthorizedError("Token is invalid or expired")

    if not user:
        raise UnauthorizedError("Invalid identity payload")
    metadata = getattr(user, "user_metadata", None) or {}
    return {
        "id": str(user.id),
        "email": user.email,
        "name": metadata.get("full_name") or metadata.get("name"),
    }
