"""
Normalization of uploaded photo files into a storable ``url``.
"""

from __future__ import annotations

import base64
import logging
import time
from typing import Optional

from roopsnap.errors import BackendError, ValidationError
from roopsnap.storage import ObjectStorage

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
UPLOAD_PREFIX = "uploads"


def to_data_uri(data: bytes, content_type: Optional[str]) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{content_type or DEFAULT_CONTENT_TYPE};base64,{encoded}"


def upload_key(filename: Optional[str]) -> str:
    name = (filename or "upload").replace("/", "_").replace("\\", "_")
    return f"{UPLOAD_PREFIX}/{int(time.time() * 1000)}-{name}"


def normalize_upload(
    data: bytes,
    filename: Optional[str],
    content_type: Optional[str],
    storage: Optional[ObjectStorage] = None,
) -> str:
    """
    Turn an uploaded file into the ``url`` stored on a photo record.

    With object storage configured the bytes are uploaded and the public URL
    is returned; otherwise the file is inlined as a base64 data URI.
    """
    if not data:
        raise ValidationError("Empty file")
    content_type = content_type or DEFAULT_CONTENT_TYPE
    if storage is None:
        return to_data_uri(data, content_type)

    key = upload_key(filename)
    try:
        url = storage.upload_bytes(key, data, content_type)
    except Exception as e:
        logger.error("Upload of %s failed: %s", key, e)
        raise BackendError("Upload failed", details=str(e)) from e
    logger.info("Uploaded %s (%d bytes)", key, len(data))
    return url
