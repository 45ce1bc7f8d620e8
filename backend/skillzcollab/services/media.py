from __future__ import annotations
import io
from PIL import Image, UnidentifiedImageError

MIME_FOR_FORMAT = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
    "BMP": "image/bmp",
    "TIFF": "image/tiff",
}
EXT_FOR_MIME = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
    "image/svg+xml": "svg",
}

def sniff_mime(data: bytes) -> str | None:
    # Use PIL to detect image format instead of deprecated imghdr
    try:
        with Image.open(io.BytesIO(data)) as img:
            return MIME_FOR_FORMAT.get(img.format or "")
    except (UnidentifiedImageError, OSError):
        return None

def ext_for_mime(mime: str) -> str:
    return EXT_FOR_MIME.get(mime, "bin")
