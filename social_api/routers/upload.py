"""
Media endpoints:
  POST /upload/image — multipart (image, type) → stored in MinIO
  POST /upload/save  — resolve an existing storageId to a URL
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool

from social_api.auth import get_current_user
from social_api.clients.minio_client import (
    get_presigned_url,
    resolve_storage_id,
    upload_image,
)
from social_api.config import settings
from social_api.errors import ValidationError
from social_api.models import User
from social_api.schemas import SavedFile, UploadResponse, UploadSave
from social_api.telemetry import UPLOADS_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()

UPLOAD_TYPES = ("profile", "post")


@router.post("/image", response_model=UploadResponse)
async def upload_image_file(
    image: Optional[UploadFile] = File(None),
    type: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
):
    if image is None:
        raise ValidationError("Image file is required")
    if not (image.content_type or "").startswith("image/"):
        raise ValidationError("File must be an image")
    if type not in UPLOAD_TYPES:
        raise ValidationError("Type must be 'profile' or 'post'")

    # One byte past the limit is enough to detect an oversize file
    data = await image.read(settings.upload_max_bytes + 1)
    if len(data) > settings.upload_max_bytes:
        max_mb = settings.upload_max_bytes // (1024 * 1024)
        raise ValidationError(f"File size must be less than {max_mb}MB")

    key = await run_in_threadpool(upload_image, data, image.content_type, type)
    url = await run_in_threadpool(get_presigned_url, key)
    UPLOADS_TOTAL.labels(type=type).inc()
    logger.info("User %s uploaded %s image %s", current_user.id, type, key)
    return UploadResponse(url=url or "", storage_id=key, type=type)


@router.post("/save", response_model=SavedFile)
async def save_upload(body: UploadSave, current_user: User = Depends(get_current_user)):
    url = await run_in_threadpool(resolve_storage_id, body.storage_id)
    return SavedFile(storage_id=body.storage_id, url=url)
