"""
cvingest: turn uploaded CVs into structured candidate records.

Adapters pull text out of the upload, the orchestrator picks which one to
trust, and the field engine (or the vendor normalizer) maps the text to a
ParsedCandidate.
"""

from .circuit_breaker import CircuitBreaker
from .config import ParserConfig
from .errors import ErrorCode, ParseFailed
from .field_extraction import extract_fields
from .models import ParsedCandidate, ParseResponse
from .pipeline import CandidateParser
from .shared import UploadedDocument
from .vendor_normalizer import normalize

__all__ = [
    "CandidateParser",
    "CircuitBreaker",
    "ErrorCode",
    "ParseFailed",
    "ParseResponse",
    "ParsedCandidate",
    "ParserConfig",
    "UploadedDocument",
    "extract_fields",
    "normalize",
]
