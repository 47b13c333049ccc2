"""
High-level ingestion pipeline.

CandidateParser wires the adapter registry, the shared circuit breaker, the
orchestrator, the field engine / vendor normalizer and the result assembler
into one call: upload in, ParsedCandidate (or a typed failure) out.
"""

from __future__ import annotations

from typing import Mapping, Optional

from .adapters.adapter_registry import AdapterRegistry
from .assembler import assemble
from .circuit_breaker import CircuitBreaker
from .config import ParserConfig
from .errors import ErrorCode, ExtractionFailed, IntakeError, NoAdapterAvailable, ParseFailed
from .intake import validate_upload
from .logging_utils import LOG
from .models import ParsedCandidate, ParseResponse
from .orchestrator import ExtractionOrchestrator
from .shared import UploadedDocument


class CandidateParser:
    """Parses uploaded CVs into candidate records. Safe to share between threads."""

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        breaker: Optional[CircuitBreaker] = None,
        registry: Optional[AdapterRegistry] = None,
        orchestrator: Optional[ExtractionOrchestrator] = None,
    ):
        self.config = config or ParserConfig()
        self.breaker = breaker or CircuitBreaker(
            failure_threshold=self.config.circuit_breaker.failure_threshold,
            cooldown_s=self.config.circuit_breaker.cooldown_s,
        )
        self.registry = registry or AdapterRegistry.from_config(self.config)
        self.orchestrator = orchestrator or ExtractionOrchestrator(self.registry, self.breaker, self.config)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CandidateParser":
        return cls(ParserConfig.from_env(environ))

    def parse(self, document: UploadedDocument) -> ParsedCandidate:
        """
        Extract text and fields from a validated document.

        Raises:
            ParseFailed: no usable text, or the confidence gate rejected the result
        """
        label = document.filename or document.media_type
        try:
            outcome = self.orchestrator.extract(document)
        except (ExtractionFailed, NoAdapterAvailable) as e:
            raise ParseFailed(str(e)) from e

        candidate = assemble(outcome, threshold=self.config.confidence_threshold)
        if candidate.is_error:
            raise ParseFailed(
                f"Confidence {candidate.confidence:.3f} below threshold {self.config.confidence_threshold}",
                candidate=candidate,
            )
        LOG.info("%s: parsed via %s, confidence %.2f", label, candidate.source, candidate.confidence)
        return candidate

    def parse_upload(
        self,
        content: Optional[bytes],
        media_type: Optional[str],
        filename: str = "",
    ) -> ParseResponse:
        """
        Validate and parse one upload, returning the response envelope.

        Input errors and PARSE_FAILED come back as failure envelopes rather
        than exceptions.
        """
        try:
            document = validate_upload(content, media_type, filename, self.config.max_file_size)
        except IntakeError as e:
            LOG.warning("%s: rejected upload: %s", filename or "upload", e)
            return ParseResponse(success=False, error_code=e.code, message=str(e))

        try:
            candidate = self.parse(document)
        except ParseFailed as e:
            LOG.warning("%s: parse failed: %s", filename or "upload", e)
            return ParseResponse(
                success=False,
                error_code=ErrorCode.PARSE_FAILED,
                message=ErrorCode.PARSE_FAILED.default_message,
                details=str(e),
            )
        return ParseResponse(success=True, candidate=candidate)
