from __future__ import annotations
from typing import Optional
import base64
import io
from PIL import Image, UnidentifiedImageError

GENERIC_MEDIA_TYPE = "application/octet-stream"


def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode('utf-8')


def sniff_media_type(data: bytes) -> Optional[str]:
    """Best-effort media type from the image bytes themselves, None if Pillow can't tell."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return Image.MIME.get(img.format)
    except (UnidentifiedImageError, OSError, ValueError):
        return None


def to_data_uri(data: bytes, media_type: Optional[str] = None) -> str:
    if not isinstance(data, bytes):
        raise ValueError(f"Unsupported image data type: {type(data)}")

    media_type = (media_type or "").strip()
    if not media_type or media_type == GENERIC_MEDIA_TYPE:
        media_type = sniff_media_type(data) or media_type or GENERIC_MEDIA_TYPE

    return f"data:{media_type};base64,{to_base64(data)}"
