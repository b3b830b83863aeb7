from datetime import timedelta

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from app.core.auth_utils import get_current_user
from app.core.errors import UnauthorizedError
from tests.conftest import generate_test_token


def _creds(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


@pytest.mark.asyncio
async def test_hs256_token_yields_identity():
    token = generate_test_token(user_id="auth-1", email="a@example.com", name="Dana Reyes")
    user = await get_current_user(_creds(token))
    assert user == {"id": "auth-1", "email": "a@example.com", "name": "Dana Reyes"}


@pytest.mark.asyncio
async def test_missing_or_expired_token_is_unauthorized():
    with pytest.raises(UnauthorizedError):
        await get_current_user(None)

    expired = generate_test_token(expires_in=timedelta(minutes=-5))
    with pytest.raises(UnauthorizedError) as exc:
        await get_current_user(_creds(expired))
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_token_without_subject_is_rejected():
    import jwt as pyjwt

    from app.core.config import app_config

    token = pyjwt.encode({"email": "x@example.com", "aud": "authenticated"}, app_config.jwt_secret, algorithm="HS256")
    with pytest.raises(UnauthorizedError) as exc:
        await get_current_user(_creds(token))
    assert exc.value.detail == "Invalid identity payload"
