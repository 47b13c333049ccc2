"""
Base interface for text extraction adapters.

Defines the contract for pluggable extraction strategies.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..models import AdapterOutput
from ..shared import UploadedDocument, clean_extracted_text


class TextAdapter(ABC):
    """
    Abstract base class for extraction adapters.

    Implementations turn the raw bytes of one class of document into text.
    The orchestrator decides when to call them; an adapter only reports
    what happened through its return value or the exception it raises.
    """

    #: provenance tag recorded on the final candidate
    source_tag: str = ""
    #: confidence reported for a successful extraction with this method
    base_confidence: float = 0.5

    def __init__(self, name: Optional[str] = None, **options: Any):
        self.name = name or type(self).__name__
        self.options: Dict[str, Any] = dict(options)

    @abstractmethod
    def extract(self, document: UploadedDocument) -> AdapterOutput:
        """
        Extract text from the given document.

        Args:
            document: The uploaded document (bytes, media type, file name)

        Returns:
            AdapterOutput with the extracted text (possibly empty) and the
            adapter's confidence in [0, 1].

        Raises:
            AdapterDeclined: The adapter refuses this input (not retried)
            TransientAdapterError: I/O failure, timeout or engine crash (retried)
        """
        ...

    def _output(self, raw_text: Optional[str], confidence: Optional[float] = None, **metadata: Any) -> AdapterOutput:
        text = clean_extracted_text(raw_text)
        if confidence is None:
            confidence = self.base_confidence
        return AdapterOutput(
            text=text,
            confidence=max(0.0, min(1.0, confidence)) if text else 0.0,
            metadata=metadata,
        )
