"""Validation of inbound image uploads."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import UploadFile

from relay.errors import EmptyUploadError, MissingInputError, PayloadTooLargeError, UnsupportedMediaTypeError
from relay.models import UploadedFile

logger = logging.getLogger(__name__)

ALLOWED_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})


async def read_upload(file: Optional[UploadFile], max_bytes: int) -> UploadedFile:
    """
    Buffer an uploaded image after checking its type and size.

    Args:
        file: The ``file`` multipart field, or None when the request has none.
        max_bytes: Upload ceiling in bytes.

    Returns:
        The fully buffered upload.
    """
    if file is None:
        logger.error("No file uploaded")
        raise MissingInputError()

    content_type = (file.content_type or "").split(";")[0].strip().lower()
    if content_type not in ALLOWED_TYPES:
        logger.warning("Rejected upload %r with type %r", file.filename, content_type)
        raise UnsupportedMediaTypeError(message="Invalid file type. Only JPEG, PNG, and WebP are allowed.")

    # One byte past the ceiling is enough to know it is too large.
    content = await file.read(max_bytes + 1)
    if len(content) > max_bytes:
        logger.warning("Rejected upload %r larger than %d bytes", file.filename, max_bytes)
        raise PayloadTooLargeError(message=f"Maximum file size is {max_bytes // (1024 * 1024)} MB.")
    if not content:
        raise EmptyUploadError()

    return UploadedFile(
        content=content,
        content_type=content_type,
        filename=file.filename or "upload",
        size=len(content),
    )
