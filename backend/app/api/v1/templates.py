from fastapi import APIRouter, Depends, Query

from app.core.roles import require_permission
from app.models.template import (
    AVAILABLE_TOKENS,
    SECTION_LABELS,
    TemplateClone,
    TemplateCreate,
    TemplateUpdate,
    default_template_config,
)
from app.services.template_service import TemplateService

router = APIRouter(prefix="/templates", tags=["Templates"])

_manage = require_permission("template:manage")


def _service() -> TemplateService:
    return TemplateService()


@router.get("")
async def list_templates(active_only: bool = Query(False), profile: dict = Depends(_manage)):
    svc = _service()
    data = svc.list_active(actor=profile) if active_only else svc.list(actor=profile)
    return {"success": True, "data": data}


@router.get("/defaults")
async def get_template_defaults(_profile: dict = Depends(_manage)):
    """
    模板编辑器初始化数据：默认配置、可用 token、section 名称。
    """
    return {
        "success": True,
        "data": {
            "config": default_template_config().to_json(),
            "tokens": [{"token": t, "label": label} for t, label in AVAILABLE_TOKENS],
            "sections": SECTION_LABELS,
        },
    }


@router.post("", status_code=201)
async def create_template(payload: TemplateCreate, profile: dict = Depends(_manage)):
    return {"success": True, "data": _service().create(actor=profile, payload=payload)}


@router.get("/{template_id}")
async def get_template(template_id: str, _profile: dict = Depends(_manage)):
    return {"success": True, "data": _service().get(template_id)}


@router.patch("/{template_id}")
async def update_template(template_id: str, payload: TemplateUpdate, profile: dict = Depends(_manage)):
    return {"success": True, "data": _service().update(actor=profile, template_id=template_id, payload=payload)}


@router.post("/{template_id}/clone", status_code=201)
async def clone_template(template_id: str, payload: TemplateClone, profile: dict = Depends(_manage)):
    return {"success": True, "data": _service().clone(actor=profile, template_id=template_id, payload=payload)}


@router.delete("/{template_id}")
async def remove_template(template_id: str, profile: dict = Depends(_manage)):
    """
    软删除：is_active=false，已有 paper 仍可渲染。
    """
    return {"success": True, "data": _service().remove(actor=profile, template_id=template_id)}
