"""
Error taxonomy for the ingestion pipeline.

Input errors are raised before any adapter runs. Adapter errors are raised
by individual adapters and interpreted by the orchestrator (retry, breaker
bookkeeping, fall-through). Terminal failures surface as PARSE_FAILED.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import ParsedCandidate


class ErrorCode(str, Enum):
    NO_FILE = "NO_FILE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"
    PARSE_FAILED = "PARSE_FAILED"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]

    @property
    def default_message(self) -> str:
        return _DEFAULT_MESSAGES[self]


_HTTP_STATUS = {
    ErrorCode.NO_FILE: 400,
    ErrorCode.FILE_TOO_LARGE: 413,
    ErrorCode.UNSUPPORTED_TYPE: 415,
    ErrorCode.PARSE_FAILED: 422,
}

_DEFAULT_MESSAGES = {
    ErrorCode.NO_FILE: "No file uploaded",
    ErrorCode.FILE_TOO_LARGE: "File too large",
    ErrorCode.UNSUPPORTED_TYPE: "Unsupported file type. Please upload PDF, DOCX, or TXT files.",
    ErrorCode.PARSE_FAILED: "Could not extract candidate details from the uploaded file",
}


class CVIngestError(Exception):
    """Base class for all cvingest errors."""


class ConfigError(CVIngestError, ValueError):
    """A configuration value could not be interpreted."""


# ------------------------- Input errors -------------------------

class IntakeError(CVIngestError, ValueError):
    """Upload rejected before extraction; never retried."""

    code: ErrorCode = ErrorCode.PARSE_FAILED

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.code.default_message)


class NoFileError(IntakeError):
    code = ErrorCode.NO_FILE


class FileTooLargeError(IntakeError):
    code = ErrorCode.FILE_TOO_LARGE


class UnsupportedTypeError(IntakeError):
    code = ErrorCode.UNSUPPORTED_TYPE


# ------------------------- Adapter errors -------------------------

class NoAdapterAvailable(CVIngestError, RuntimeError):
    """No enabled adapter supports the requested media type."""

    def __init__(self, media_type: str):
        super().__init__(f"No enabled adapter supports media type: {media_type}")
        self.media_type = media_type


class AdapterError(CVIngestError, RuntimeError):
    """Base class for errors raised from inside an adapter."""

    def __init__(self, adapter: str, message: str):
        super().__init__(f"Adapter {adapter}: {message}")
        self.adapter = adapter


class AdapterDeclined(AdapterError):
    """The adapter refuses this particular input. Not retried."""


class TransientAdapterError(AdapterError):
    """I/O failure, timeout or engine crash. Retried by the orchestrator."""


class VendorUnavailable(TransientAdapterError):
    """Vendor transport failure: timeout, non-2xx status or malformed JSON."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__("vendor", message)
        self.status_code = status_code


class AdapterUnavailable(AdapterError):
    """The circuit breaker for this adapter is open."""

    def __init__(self, adapter: str, retry_in_s: float = 0.0):
        super().__init__(adapter, f"circuit open, retry in {retry_in_s:.1f}s")
        self.retry_in_s = retry_in_s


# ------------------------- Terminal failures -------------------------

class ExtractionFailed(CVIngestError, RuntimeError):
    """Every eligible adapter was skipped, failed or produced no text."""


class ParseFailed(CVIngestError, RuntimeError):
    """Terminal PARSE_FAILED outcome, including the low-confidence gate."""

    code = ErrorCode.PARSE_FAILED

    def __init__(self, message: str, candidate: Optional["ParsedCandidate"] = None):
        super().__init__(message)
        self.candidate = candidate
