from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from postgrest.exceptions import APIError

from app.core.errors import NotFoundError, ValidationFailedError
from app.core.role_matrix import require_action
from app.lib.api_client import extract_rows, is_invalid_uuid_error, supabase_admin
from app.models.template import JournalTemplateConfig, TemplateClone, TemplateCreate, TemplateUpdate

logger = logging.getLogger("journal.templates")

TEMPLATES_TABLE = "templates"


class TemplateService:
    """
    期刊排版模板 CRUD。

    中文注释:
    - config 入库前必须通过 JournalTemplateConfig 校验，出库统一是 camelCase JSON。
    - 删除是软删除（is_active=false）：已生成的 paper 仍然引用该模板。
    """

    def __init__(self, client: Any = None) -> None:
        self.client = client if client is not None else supabase_admin

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def list(self, *, actor: Dict[str, Any]) -> List[Dict[str, Any]]:
        require_action(action="template:manage", role=actor.get("role"))
        resp = self.client.table(TEMPLATES_TABLE).select("*").order("updated_at", desc=True).execute()
        return extract_rows(resp)

    def list_active(self, *, actor: Dict[str, Any]) -> List[Dict[str, Any]]:
        require_action(action="template:manage", role=actor.get("role"))
        resp = (
            self.client.table(TEMPLATES_TABLE)
            .select("*")
            .eq("is_active", True)
            .order("updated_at", desc=True)
            .execute()
        )
        return extract_rows(resp)

    def get(self, template_id: str) -> Dict[str, Any]:
        try:
            rows = extract_rows(
                self.client.table(TEMPLATES_TABLE).select("*").eq("id", str(template_id)).limit(1).execute()
            )
        except APIError as e:
            if is_invalid_uuid_error(e):
                raise NotFoundError("Template not found") from e
            raise
        if not rows:
            raise NotFoundError("Template not found")
        return rows[0]

    def get_config(self, template: Dict[str, Any]) -> JournalTemplateConfig:
        """
        数据库里的 config -> 校验后的模型；历史数据缺字段时按默认值补齐。
        """
        try:
            return JournalTemplateConfig.model_validate(template.get("config") or {})
        except ValueError as e:
            raise ValidationFailedError(f"Template config is invalid: {e}") from e

    def create(self, *, actor: Dict[str, Any], payload: TemplateCreate) -> Dict[str, Any]:
        require_action(action="template:manage", role=actor.get("role"))
        now = self._now()
        body = {
            "name": payload.name.strip(),
            "description": (payload.description or "").strip() or None,
            "version": payload.version.strip(),
            "config": payload.config.to_json(),
            "created_by": str(actor["id"]),
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }
        rows = extract_rows(self.client.table(TEMPLATES_TABLE).insert(body).execute())
        created = rows[0] if rows else body
        logger.info("[Templates] created id=%s name=%s by=%s", created.get("id"), body["name"], actor.get("id"))
        return created

    def update(self, *, actor: Dict[str, Any], template_id: str, payload: TemplateUpdate) -> Dict[str, Any]:
        require_action(action="template:manage", role=actor.get("role"))
        self.get(template_id)

        patch: Dict[str, Any] = {}
        if payload.name is not None:
            patch["name"] = payload.name.strip()
        if payload.description is not None:
            patch["description"] = payload.description.strip() or None
        if payload.version is not None:
            patch["version"] = payload.version.strip()
        if payload.config is not None:
            patch["config"] = payload.config.to_json()
        if payload.is_active is not None:
            patch["is_active"] = payload.is_active
        if not patch:
            raise ValidationFailedError("At least one field must be provided")
        patch["updated_at"] = self._now()

        rows = extract_rows(self.client.table(TEMPLATES_TABLE).update(patch).eq("id", str(template_id)).execute())
        if not rows:
            raise NotFoundError("Template not found")
        return rows[0]

    def clone(self, *, actor: Dict[str, Any], template_id: str, payload: TemplateClone) -> Dict[str, Any]:
        require_action(action="template:manage", role=actor.get("role"))
        source = self.get(template_id)
        return self.create(
            actor=actor,
            payload=TemplateCreate(
                name=payload.name,
                description=source.get("description"),
                version=payload.version,
                config=self.get_config(source),
            ),
        )

    def remove(self, *, actor: Dict[str, Any], template_id: str) -> Dict[str, Any]:
        require_action(action="template:manage", role=actor.get("role"))
        self.get(template_id)
        rows = extract_rows(
            self.client.table(TEMPLATES_TABLE)
            .update({"is_active": False, "updated_at": self._now()})
            .eq("id", str(template_id))
            .execute()
        )
        if not rows:
            raise NotFoundError("Template not found")
        logger.info("[Templates] deactivated id=%s by=%s", template_id, actor.get("id"))
        return rows[0]
