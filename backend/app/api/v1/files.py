from fastapi import APIRouter, Depends, File, UploadFile

from app.core.errors import ValidationFailedError
from app.core.roles import get_current_profile
from app.services import storage_service

router = APIRouter(prefix="/files", tags=["Files"])

MAX_UPLOAD_BYTES = 25 * 1024 * 1024


@router.post("", status_code=201)
async def upload_file(file: UploadFile = File(...), profile: dict = Depends(get_current_profile)):
    """
    上传稿件/版权/流转附件，返回 storage_id 供后续请求引用。
    """
    content = await file.read()
    if not content:
        raise ValidationFailedError("Uploaded file is empty")
    if len(content) > MAX_UPLOAD_BYTES:
        raise ValidationFailedError("Uploaded file exceeds the 25 MB limit")

    path = storage_service.build_storage_path(owner_id=str(profile["id"]), filename=file.filename or "")
    storage_id = storage_service.upload_bytes(
        path=path,
        content=content,
        content_type=file.content_type or "application/octet-stream",
    )
    return {"success": True, "data": {"storage_id": storage_id, "url": storage_service.resolve_url(storage_id)}}
