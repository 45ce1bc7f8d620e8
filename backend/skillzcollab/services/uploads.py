from __future__ import annotations
import base64
import binascii
import hashlib
import re
import uuid
from dataclasses import dataclass
from pathlib import PurePosixPath
from fastapi import UploadFile
import structlog
from skillzcollab.config import get_file_upload_config
from skillzcollab.errors import BadRequest, PayloadTooLarge
from skillzcollab.services import storage
from skillzcollab.services.media import sniff_mime, ext_for_mime

log = structlog.get_logger()

DATA_URL_RE = re.compile(r"^data:(image/[\w.+-]+);base64,(.*)$", re.DOTALL)


@dataclass
class IncomingFile:
    filename: str
    content_type: str
    data: bytes


def validate_file_type(mime: str | None) -> bool:
    return bool(mime) and mime in get_file_upload_config().allowed_mime_types


def validate_file_size(size: int, max_size: int | None = None) -> bool:
    limit = max_size if max_size is not None else get_file_upload_config().max_file_size
    return 0 <= size <= limit


def validate_upload_count(count: int) -> None:
    max_files = get_file_upload_config().max_files
    if count > max_files:
        raise PayloadTooLarge(f"Too many files. Maximum is {max_files}", code="TOO_MANY_FILES")


async def validate_uploads(files: list[UploadFile]) -> list[IncomingFile]:
    """Read multipart files, enforcing count, size and type limits."""
    cfg = get_file_upload_config()
    validate_upload_count(len(files))
    out: list[IncomingFile] = []
    for f in files:
        data = await f.read()
        name = f.filename or "upload"
        if not validate_file_size(len(data), cfg.max_file_size):
            raise PayloadTooLarge(
                f"File {name} exceeds the maximum size of {cfg.max_file_size} bytes", code="FILE_TOO_LARGE"
            )
        content_type = (f.content_type or "").split(";")[0].strip().lower()
        if not validate_file_type(content_type):
            raise BadRequest(f"File type {content_type or 'unknown'} is not allowed", code="INVALID_FILE_TYPE")
        out.append(IncomingFile(filename=name, content_type=content_type, data=data))
    return out


def _extension(filename: str, content_type: str) -> str:
    suffix = PurePosixPath(filename).suffix.lstrip(".").lower()
    return suffix or ext_for_mime(content_type)


def upload_file(data: bytes, filename: str, content_type: str, folder: str = "uploads") -> dict:
    """Store one object and return its FileMeta dict plus the server-side storage `key`."""
    file_id = str(uuid.uuid4())
    key = f"{folder}/{file_id}.{_extension(filename, content_type)}"
    storage.put_bytes(key, data, content_type)
    log.info("file_uploaded", key=key, size=len(data), content_type=content_type)
    return {
        "id": file_id,
        "filename": filename,
        "size": len(data),
        "type": content_type,
        "url": storage.object_url(key),
        "hash": hashlib.md5(data).hexdigest(),
        "key": key,
    }


def upload_files(files: list[IncomingFile], folder: str = "uploads") -> list[dict]:
    return [upload_file(f.data, f.filename, f.content_type, folder) for f in files]


def decode_base64_image(value: str) -> tuple[bytes, str | None]:
    m = DATA_URL_RE.match(value.strip())
    declared = m.group(1).lower() if m else None
    payload = "".join((m.group(2) if m else value).split())
    try:
        return base64.b64decode(payload, validate=True), declared
    except (binascii.Error, ValueError):
        raise BadRequest("Invalid base64 image data", code="VALIDATION_FAILED")


def upload_base64_image(value: str, folder: str = "uploads", index: int = 0) -> dict:
    cfg = get_file_upload_config()
    data, declared = decode_base64_image(value)
    if not validate_file_size(len(data), cfg.max_base64_image_size):
        raise PayloadTooLarge(
            f"Image {index + 1} exceeds the maximum size of {cfg.max_base64_image_size} bytes", code="FILE_TOO_LARGE"
        )
    mime = sniff_mime(data) or declared or "image/jpeg"
    if not validate_file_type(mime):
        raise BadRequest(f"File type {mime} is not allowed", code="INVALID_FILE_TYPE")
    return upload_file(data, f"image_{index + 1}.{ext_for_mime(mime)}", mime, folder)


def upload_base64_images(values: list[str], folder: str = "uploads") -> list[dict]:
    validate_upload_count(len(values))
    return [upload_base64_image(v, folder, i) for i, v in enumerate(values)]


def delete_file(meta: dict) -> bool:
    """Remove the object behind metadata from upload_file. FileMeta input drops `key`."""
    key = meta.get("key")
    if not key or storage.key_from_url(meta.get("url") or "") != key:
        return False
    return storage.delete_object(key)


def carry_stored_keys(old: list[dict], new: list[dict]) -> list[dict]:
    """Keep the storage key on entries of `new` that were already stored on this row."""
    keys = {m["url"]: m["key"] for m in old or [] if m.get("key") and m.get("url")}
    return [{**m, "key": keys[m["url"]]} if m.get("url") in keys and not m.get("key") else m for m in new]


def delete_replaced_files(old: list[dict], new: list[dict]) -> int:
    kept = {m.get("url") for m in new or []}
    return sum(1 for m in old or [] if m.get("url") not in kept and delete_file(m))
