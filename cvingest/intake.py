"""
Upload validation.

Input errors are detected here, before any adapter runs, and are never
retried.
"""

from __future__ import annotations

from typing import Optional

from .config import DEFAULT_MAX_FILE_SIZE
from .errors import FileTooLargeError, NoFileError, UnsupportedTypeError
from .shared import ALLOWED_MEDIA_TYPES, UploadedDocument, normalize_media_type


def validate_upload(
    content: Optional[bytes],
    media_type: Optional[str],
    filename: str = "",
    max_size: int = DEFAULT_MAX_FILE_SIZE,
) -> UploadedDocument:
    """
    Check an upload and wrap it as an UploadedDocument.

    A present-but-empty file passes: it is the adapters' job to decline it.

    Raises:
        NoFileError: no file in the request
        FileTooLargeError: more than max_size bytes
        UnsupportedTypeError: media type outside the allow-list
    """
    if content is None:
        raise NoFileError()
    if len(content) > max_size:
        raise FileTooLargeError(f"File too large: {len(content)} bytes (limit {max_size})")

    normalized = normalize_media_type(media_type)
    if normalized not in ALLOWED_MEDIA_TYPES:
        raise UnsupportedTypeError(
            f"Unsupported file type: {normalized or 'unknown'}. Please upload PDF, DOCX, or TXT files."
        )
    return UploadedDocument(content=bytes(content), media_type=normalized, filename=filename)
