from typing import Any, Dict, Optional

API_PREFIX = "/api/v1"


def auth_headers(token: Optional[str] = None) -> Dict[str, str]:
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def api_path(path: str) -> str:
    return f"{API_PREFIX}/{path.lstrip('/')}"


def data_of(response: Any) -> Any:
    """
    取出 {"success": true, "data": ...} 信封里的 data，同时断言 success。
    """
    body = response.json()
    assert body.get("success") is True, body
    return body.get("data")
