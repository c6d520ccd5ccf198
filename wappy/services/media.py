# wappy/services/media.py
"""
Public media URLs and MIME types for template attachments.
"""
from typing import Optional

from wappy.core import config

DEFAULT_MIME_TYPE = "application/octet-stream"

MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "mp4": "video/mp4",
    "pdf": "application/pdf",
}


def tenant_media_folder(tenant_code: str, prefix: Optional[str] = None) -> str:
    """'spotty42' -> '42'"""
    prefix = config.TENANT_CODE_PREFIX if prefix is None else prefix
    code = tenant_code.strip()
    if prefix and code.lower().startswith(prefix.lower()):
        return code[len(prefix):]
    return code


def build_media_url(tenant_code: str, filename: str, base_url: Optional[str] = None) -> str:
    """Public URL of a file stored under the tenant's media folder"""
    base = (base_url or config.MEDIA_BASE_URL).rstrip("/")
    return f"{base}/{tenant_media_folder(tenant_code)}/images/{filename.lstrip('/')}"


def guess_mime_type(filename: Optional[str]) -> str:
    if not filename or "." not in filename:
        return DEFAULT_MIME_TYPE
    # Ignore any query string on URLs
    extension = filename.split("?", 1)[0].rsplit(".", 1)[-1].lower()
    return MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)
