"""
MinIO (S3-compatible) client for media storage.

Stores profile and post images as objects. The object key doubles as the
``storageId`` handed to clients. Profiles and posts persist the key, never a
URL; a pre-signed URL is minted each time one is read, so links do not go
stale and image bytes never pass back through the API.
"""
import logging
import mimetypes
import uuid
from io import BytesIO
from typing import Optional

import boto3
from botocore.client import Config
from botocore.exceptions import ClientError

from social_api.config import settings
from social_api.errors import ValidationError

logger = logging.getLogger(__name__)

_s3 = None


def init_minio() -> None:
    """Create the S3 client and ensure the media bucket exists."""
    global _s3
    scheme = "https" if settings.minio_use_ssl else "http"
    _s3 = boto3.client(
        "s3",
        endpoint_url=f"{scheme}://{settings.minio_endpoint}",
        aws_access_key_id=settings.minio_access_key,
        aws_secret_access_key=settings.minio_secret_key,
        config=Config(signature_version="s3v4"),
        region_name="us-east-1",
    )

    try:
        _s3.head_bucket(Bucket=settings.minio_bucket)
        logger.info("Using media bucket '%s' at %s", settings.minio_bucket, settings.minio_endpoint)
    except ClientError:
        _s3.create_bucket(Bucket=settings.minio_bucket)
        logger.info("Created media bucket '%s'", settings.minio_bucket)


def get_s3():
    if _s3 is None:
        raise RuntimeError("MinIO client not initialised — call init_minio() at startup")
    return _s3


def upload_image(data: bytes, content_type: str, kind: str) -> str:
    """
    Upload image bytes to MinIO and return the object key.
    Key format: {kind}/{uuid}{ext}  (kind is 'profile' or 'post')
    """
    ext = mimetypes.guess_extension(content_type) or ".bin"
    key = f"{kind}/{uuid.uuid4()}{ext}"

    s3 = get_s3()
    s3.put_object(
        Bucket=settings.minio_bucket,
        Key=key,
        Body=BytesIO(data),
        ContentType=content_type,
    )
    logger.debug("Uploaded image to MinIO: %s (%d bytes)", key, len(data))
    return key


def get_presigned_url(media_key: str, expires_in: Optional[int] = None) -> Optional[str]:
    """Generate a temporary pre-signed URL valid for `expires_in` seconds."""
    if not media_key:
        return None
    s3 = get_s3()
    try:
        url = s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": settings.minio_bucket, "Key": media_key},
            ExpiresIn=expires_in or settings.presigned_url_ttl,
        )
        return url
    except Exception as exc:
        logger.warning("Failed to generate presigned URL for %s: %s", media_key, exc)
        return None


def require_object(storage_id: str) -> None:
    """ValidationError unless ``storage_id`` names an uploaded object."""
    s3 = get_s3()
    try:
        s3.head_object(Bucket=settings.minio_bucket, Key=storage_id)
    except ClientError as exc:
        logger.info("Storage id %s not found: %s", storage_id, exc)
        raise ValidationError("File not found") from exc


def resolve_storage_id(storage_id: str) -> str:
    """Fresh pre-signed URL for a previously uploaded object."""
    require_object(storage_id)
    url = get_presigned_url(storage_id)
    if not url:
        raise ValidationError("File not found")
    return url
