from __future__ import annotations
import io
from datetime import timedelta
from functools import lru_cache
import structlog
from minio import Minio
from minio.error import S3Error
from urllib3.exceptions import HTTPError
from skillzcollab.config import get_object_storage_config
from skillzcollab.errors import UpstreamError

log = structlog.get_logger()

def _parse_endpoint(ep: str) -> tuple[str, bool]:
    # Return (host:port, secure)
    secure = ep.startswith("https://")
    host = ep.replace("http://", "").replace("https://", "").rstrip("/")
    return host, secure

@lru_cache(maxsize=1)
def _client() -> Minio:
    cfg = get_object_storage_config()
    host, secure = _parse_endpoint(cfg.endpoint)
    client = Minio(
        host,
        access_key=cfg.access_key_id,
        secret_key=cfg.secret_access_key,
        secure=secure,
        region=cfg.region,
    )
    # Ensure bucket exists (idempotent)
    try:
        if not client.bucket_exists(cfg.bucket):
            client.make_bucket(cfg.bucket)
    except S3Error as e:
        # creation may race with another worker; uploads surface real failures
        log.warning("bucket_ensure_failed", bucket=cfg.bucket, code=e.code)
    return client

def object_url(key: str) -> str:
    cfg = get_object_storage_config()
    if cfg.public_base_url:
        return f"{cfg.public_base_url.rstrip('/')}/{key}"
    return f"{cfg.endpoint.rstrip('/')}/{cfg.bucket}/{key}"

def put_bytes(key: str, data: bytes, content_type: str) -> None:
    bucket = get_object_storage_config().bucket
    try:
        _client().put_object(bucket, key, io.BytesIO(data), length=len(data), content_type=content_type)
    except (S3Error, HTTPError) as e:
        log.error("storage_put_failed", key=key, error=str(e))
        raise UpstreamError("Failed to upload file", code="UPLOAD_FAILED") from e

def delete_object(key: str) -> bool:
    bucket = get_object_storage_config().bucket
    try:
        _client().remove_object(bucket, key)
        return True
    except (S3Error, HTTPError) as e:
        log.error("storage_delete_failed", key=key, error=str(e))
        return False

def presign_get(key: str) -> str:
    cfg = get_object_storage_config()
    return _client().presigned_get_object(cfg.bucket, key, expires=timedelta(seconds=cfg.presign_expiry_seconds))

def key_from_url(url: str) -> str | None:
    """Inverse of object_url for files this service uploaded."""
    cfg = get_object_storage_config()
    for prefix in filter(None, [cfg.public_base_url, f"{cfg.endpoint.rstrip('/')}/{cfg.bucket}"]):
        prefix = prefix.rstrip("/") + "/"
        if url.startswith(prefix):
            return url[len(prefix):]
    return None
