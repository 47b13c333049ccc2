"""
Result assembler: merges the orchestrator outcome with the extracted fields
and applies the low-confidence gate.
"""

from __future__ import annotations

from typing import Optional

from .field_extraction import extract_fields, field_confidence
from .logging_utils import LOG
from .models import SOURCE_VENDOR, ExtractionOutcome, ParsedCandidate
from .vendor_normalizer import normalize


def candidate_for(outcome: ExtractionOutcome) -> ParsedCandidate:
    """Vendor payloads go through the normalizer, everything else through the field engine."""
    if outcome.source_tag == SOURCE_VENDOR and outcome.payload is not None:
        return normalize(outcome.payload)
    return extract_fields(outcome.text)


def assemble(
    outcome: ExtractionOutcome,
    candidate: Optional[ParsedCandidate] = None,
    threshold: float = 0.1,
) -> ParsedCandidate:
    """
    Final confidence = extraction confidence x field completeness, clamped
    to [0, 1]. Below threshold the result is the error candidate (all fields
    empty, source "error"), otherwise the candidate tagged with the source of
    the text it came from.
    """
    if candidate is None:
        candidate = candidate_for(outcome)

    completeness = field_confidence(candidate)
    confidence = max(0.0, min(1.0, outcome.confidence * completeness))

    if confidence < threshold:
        LOG.info("Confidence %.3f below %.2f (extraction %.2f x fields %.2f), rejecting",
                 confidence, threshold, outcome.confidence, completeness)
        return ParsedCandidate.error(confidence)

    LOG.debug("Assembled candidate from %s: confidence %.3f", outcome.source_tag, confidence)
    return candidate.with_provenance(outcome.source_tag, confidence)
