"""Object storage on Cloudflare R2 (S3 API)"""

import logging
import os
import uuid
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from ..config import (
    MAX_UPLOAD_BYTES,
    R2_ACCESS_KEY_ID,
    R2_ACCOUNT_ID,
    R2_BUCKET_NAME,
    R2_PUBLIC_URL,
    R2_SECRET_ACCESS_KEY,
)
from ..errors import AppError, NotFoundError
from ..security_utils import sanitize_filename

logger = logging.getLogger(__name__)

PRESIGNED_URL_EXPIRATION = 7 * 24 * 3600

ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}
IMAGE_CONTENT_TYPES = {".jpg": "image/jpeg", ".jpeg": "image/jpeg", ".png": "image/png"}


def get_r2_client():
    """Create and return an R2 client."""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=R2_ACCESS_KEY_ID,
        aws_secret_access_key=R2_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
    )


def validate_image_upload(filename: str, size: int) -> str:
    """Check extension and size of an uploaded image; returns its content type"""
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise AppError(
            400,
            "Type de fichier non autorisé",
            {"allowed": sorted(ALLOWED_IMAGE_EXTENSIONS), "received": ext or None},
        )
    if size <= 0:
        raise AppError(400, "Fichier vide")
    if size > MAX_UPLOAD_BYTES:
        raise AppError(413, f"Fichier trop volumineux (max {MAX_UPLOAD_BYTES // (1024 * 1024)} Mo)")
    return IMAGE_CONTENT_TYPES[ext]


def build_unique_key(folder: str, filename: str) -> str:
    return f"{folder.strip('/')}/{uuid.uuid4()}_{sanitize_filename(filename)}"


def generate_presigned_url(key: str, expiration: int = PRESIGNED_URL_EXPIRATION) -> str:
    """Generate a presigned URL for accessing a private object in R2."""
    r2 = get_r2_client()
    params = {"Bucket": R2_BUCKET_NAME, "Key": key}
    if key.lower().endswith((".jpg", ".jpeg", ".png", ".pdf")):
        params["ResponseContentDisposition"] = "inline"

    try:
        url = r2.generate_presigned_url("get_object", Params=params, ExpiresIn=expiration)
        logger.info(f"✅ Generated presigned URL for key: {key}")
        return url
    except Exception as e:
        logger.error(f"❌ Failed to generate presigned URL for key {key}: {e}")
        raise AppError(500, "Erreur lors de la génération de l'URL du fichier", str(e)) from e


def public_url(key: str) -> str:
    if R2_PUBLIC_URL:
        return f"{R2_PUBLIC_URL.rstrip('/')}/{key}"
    return generate_presigned_url(key)


def upload_file(
    data: bytes,
    filename: str,
    folder: str,
    content_type: str = "application/octet-stream",
    key: Optional[str] = None,
) -> dict:
    """
    Upload bytes to R2.

    Returns:
        {"url": ..., "fileKey": ...}; the key is `{folder}/{uuid}_{name}` unless given
    """
    file_key = key or build_unique_key(folder, filename)
    try:
        get_r2_client().put_object(
            Bucket=R2_BUCKET_NAME,
            Key=file_key,
            Body=data,
            ContentType=content_type,
        )
    except Exception as e:
        logger.error(f"❌ Upload failed for {file_key}: {e}")
        raise AppError(500, "Erreur serveur lors de l'upload du fichier", str(e)) from e

    logger.info(f"✅ Uploaded {file_key} ({len(data)} bytes)")
    return {"url": public_url(file_key), "fileKey": file_key}


def delete_file(file_key: str) -> None:
    """Delete an object; 404 when it does not exist"""
    r2 = get_r2_client()
    try:
        r2.head_object(Bucket=R2_BUCKET_NAME, Key=file_key)
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code")
        if code in ("404", "NoSuchKey", "NotFound"):
            raise NotFoundError("Fichier non trouvé", file_key) from e
        logger.error(f"❌ Failed to stat {file_key}: {e}")
        raise AppError(500, "Erreur serveur lors de la suppression du fichier", str(e)) from e

    try:
        r2.delete_object(Bucket=R2_BUCKET_NAME, Key=file_key)
        logger.info(f"🗑️ Deleted {file_key}")
    except Exception as e:
        logger.error(f"❌ Failed to delete {file_key}: {e}")
        raise AppError(500, "Erreur serveur lors de la suppression du fichier", str(e)) from e


def delete_files_quietly(file_keys: list[str]) -> None:
    """Best-effort cleanup used when the owning record goes away"""
    for file_key in file_keys:
        if not file_key:
            continue
        try:
            delete_file(file_key)
        except AppError as e:
            logger.warning(f"⚠️ Could not delete {file_key}: {e.message}")
