import os
import sys
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Callable

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from main import app  # noqa: E402

from tests.utils.fake_supabase import FakeSupabase  # noqa: E402

# === 全局测试配置 ===
# 中文注释:
# 1. 显式使用 pytest_asyncio.fixture，STRICT 模式下异步生成器 fixture 才能被正确 await。
# 2. 各服务模块的 supabase_admin 统一替换成内存版 FakeSupabase，单测不依赖真实数据库。
# 3. JWT 使用 HS256 + SUPABASE_JWT_SECRET（默认值与 app_config 一致）签发。

_PATCHED_MODULES = (
    "app.services.user_service",
    "app.services.status_history_service",
    "app.services.editorial_service",
    "app.services.submission_service",
    "app.services.publication_service",
    "app.services.review_service",
    "app.services.template_service",
    "app.services.paper_service",
    "app.services.storage_service",
)


@pytest_asyncio.fixture
async def client() -> AsyncGenerator:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


def generate_test_token(
    user_id: str = "00000000-0000-0000-0000-000000000000",
    email: str = "test@example.com",
    name: str | None = None,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    secret = os.environ.get("SUPABASE_JWT_SECRET", "mock-secret-replace-later")
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "exp": now + expires_in,
        "iat": now,
        "role": "authenticated",
    }
    if name:
        payload["user_metadata"] = {"full_name": name}
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def auth_token() -> str:
    return generate_test_token()


@pytest.fixture
def expired_token() -> str:
    return generate_test_token(expires_in=timedelta(hours=-1))


@pytest.fixture
def fake_db(monkeypatch) -> FakeSupabase:
    fake = FakeSupabase()
    for module in _PATCHED_MODULES:
        monkeypatch.setattr(f"{module}.supabase_admin", fake)
    monkeypatch.delenv("AUTO_QUEUE_SUBMISSIONS", raising=False)
    return fake


@pytest.fixture
def make_user(fake_db) -> Callable[..., dict]:
    """
    直接写入 user_profiles（绕过首个用户=admin 的引导逻辑），返回 profile + token。
    """

    counter = {"n": 0}

    def _make(role: str = "author", name: str | None = None) -> dict:
        counter["n"] += 1
        subject = f"auth-{role}-{counter['n']}"
        email = f"{role}{counter['n']}@example.com"
        full_name = name or f"{role.title()} {counter['n']}"
        profile = fake_db.seed(
            "user_profiles",
            {"auth_subject": subject, "email": email, "full_name": full_name, "role": role},
        )[0]
        token = generate_test_token(user_id=subject, email=email, name=full_name)
        return {**profile, "token": token, "headers": {"Authorization": f"Bearer {token}"}}

    return _make


@pytest.fixture
def submission_payload() -> dict:
    return {
        "title": "Effects of Peer Tutoring on Reading Fluency",
        "abstract": "A twelve week study of peer tutoring across four primary schools in the region.",
        "article_type": "Original Research",
        "corresponding_author": {
            "name": "Dana Reyes",
            "address": "12 College Road, Springfield",
            "email": "dana.reyes@example.com",
            "phone": "+1 555 0100",
        },
        "research_authors": [
            {"name": "Dana Reyes", "affiliation": "Springfield University"},
            {"name": "Lee Okafor", "affiliation": "Northfield College"},
        ],
        "keywords": ["tutoring", "reading", "tutoring"],
        "manuscript_file_id": "uploads/author/manuscript.pdf",
        "copyright_file_id": "uploads/author/copyright.pdf",
    }
