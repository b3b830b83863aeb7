import os
from uuid import uuid4

import pytest
from supabase import Client, create_client

# === 集成测试配置 ===
# 中文注释:
# - 直接连真实 Supabase（需已执行 supabase/migrations），未配置时整体 skip。
# - 使用 service_role key：服务层与后端运行时一样绕过 RLS。


@pytest.fixture(scope="session")
def supabase_url() -> str:
    url = (os.environ.get("SUPABASE_URL") or "").strip()
    if not url:
        pytest.skip("SUPABASE_URL must be set for integration tests")
    return url


@pytest.fixture(scope="session")
def supabase_service_role_key() -> str:
    key = (os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
    if not key:
        pytest.skip("SUPABASE_SERVICE_ROLE_KEY must be set for integration tests")
    return key


@pytest.fixture(scope="session")
def db(supabase_url: str, supabase_service_role_key: str) -> Client:
    return create_client(supabase_url, supabase_service_role_key)


@pytest.fixture
def profile_factory(db: Client):
    from app.services.user_service import UserService

    def _make(role: str = "author") -> dict:
        subject = f"it-{uuid4().hex}"
        profile = UserService(db).ensure_user(subject=subject, email=f"{subject}@example.com", name=f"IT {role}")
        if profile.get("role") != role:
            profile = db.table("user_profiles").update({"role": role}).eq("id", profile["id"]).execute().data[0]
        return profile

    return _make
