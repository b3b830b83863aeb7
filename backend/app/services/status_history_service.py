from __future__ import annotations

import logging
from typing import Any, Optional

from app.lib.api_client import extract_rows, supabase_admin
from app.models.manuscript import ChangeRole, normalize_status
from app.services import storage_service
from app.services.user_service import UserService

logger = logging.getLogger("journal.history")

HISTORY_TABLE = "manuscript_status_history"
UNKNOWN_USER_NAME = "Unknown"

_COLUMNS = (
    "id,seq,manuscript_id,previous_status,new_status,changed_by_user_id,"
    "changed_by_role,note,attachment_storage_id,created_at"
)


class StatusHistoryService:
    """
    稿件状态流转审计账本（manuscript_status_history）。

    中文注释:
    - 只追加：本服务不提供 update/delete，数据库层也有触发器拒绝修改。
    - 排序键：created_at 升序，同一时间戳按 seq（插入顺序）决胜。
    - enrich（操作人姓名、附件 URL）是只读旁路查询，失败时降级为占位值，不影响主查询。
    """

    def __init__(self, client: Any = None) -> None:
        self.client = client if client is not None else supabase_admin

    def append(self, record: dict[str, Any]) -> dict[str, Any]:
        """
        直接追加一条记录（导入/回填用；正常流转由 transition RPC 在事务内写入）。
        """
        new_status = normalize_status(record.get("new_status"))
        if new_status is None:
            raise ValueError(f"Invalid new_status: {record.get('new_status')!r}")
        role = str(record.get("changed_by_role") or ChangeRole.SYSTEM.value)
        payload = {
            "manuscript_id": str(record["manuscript_id"]),
            "previous_status": normalize_status(record.get("previous_status")),
            "new_status": new_status,
            "changed_by_user_id": str(record["changed_by_user_id"]),
            "changed_by_role": ChangeRole(role).value,
            "note": str(record.get("note") or "").strip(),
            "attachment_storage_id": record.get("attachment_storage_id"),
        }
        if record.get("created_at"):
            payload["created_at"] = record["created_at"]
        resp = self.client.table(HISTORY_TABLE).insert(payload).execute()
        rows = extract_rows(resp)
        return rows[0] if rows else payload

    def _fetch(self, manuscript_id: str, *, desc: bool, limit: Optional[int] = None) -> list[dict[str, Any]]:
        query = (
            self.client.table(HISTORY_TABLE)
            .select(_COLUMNS)
            .eq("manuscript_id", str(manuscript_id))
            .order("created_at", desc=desc)
            .order("seq", desc=desc)
        )
        if limit is not None:
            query = query.limit(limit)
        return extract_rows(query.execute())

    def _user_names(self, records: list[dict[str, Any]]) -> dict[str, str]:
        ids = [str(r.get("changed_by_user_id") or "") for r in records]
        try:
            profiles = UserService(self.client).get_names(ids)
        except Exception as e:
            logger.warning("[StatusHistory] load user names failed (ignored): %s", e)
            return {}
        names: dict[str, str] = {}
        for uid, profile in profiles.items():
            name = (profile.get("full_name") or profile.get("email") or "").strip()
            if name:
                names[uid] = name
        return names

    def _attachment_url(self, storage_id: Optional[str]) -> Optional[str]:
        if not storage_id:
            return None
        try:
            return storage_service.resolve_url(storage_id)
        except Exception as e:
            logger.warning("[StatusHistory] resolve attachment url failed (ignored): %s", e)
            return None

    def _enrich(
        self,
        records: list[dict[str, Any]],
        *,
        with_attachments: bool,
    ) -> list[dict[str, Any]]:
        names = self._user_names(records)
        out: list[dict[str, Any]] = []
        for record in records:
            item = dict(record)
            item["changed_by_name"] = names.get(str(record.get("changed_by_user_id") or ""), UNKNOWN_USER_NAME)
            if with_attachments:
                item["attachment_url"] = self._attachment_url(record.get("attachment_storage_id"))
            out.append(item)
        return out

    def list_by_manuscript(self, manuscript_id: str) -> list[dict[str, Any]]:
        records = self._fetch(manuscript_id, desc=False)
        return self._enrich(records, with_attachments=True)

    def latest_by_manuscript(self, manuscript_id: str) -> Optional[dict[str, Any]]:
        records = self._fetch(manuscript_id, desc=True, limit=1)
        if not records:
            return None
        return self._enrich(records, with_attachments=False)[0]
