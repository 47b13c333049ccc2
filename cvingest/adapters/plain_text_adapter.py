"""
Plain-text passthrough adapter.
"""

from __future__ import annotations

from ..errors import AdapterDeclined
from ..models import SOURCE_TEXT_FILE, AdapterOutput
from ..shared import UploadedDocument
from .base import TextAdapter


class PlainTextAdapter(TextAdapter):
    """Decodes text/plain uploads (UTF-8, BOM tolerant, lossy on bad bytes)."""

    source_tag = SOURCE_TEXT_FILE
    base_confidence = 0.95

    def extract(self, document: UploadedDocument) -> AdapterOutput:
        if not document.content:
            raise AdapterDeclined(self.name, "document is empty")

        encoding = self.options.get("encoding", "utf-8-sig")
        decoded = document.content.decode(encoding, errors="replace")
        replaced = decoded.count("\ufffd")
        confidence = self.base_confidence
        if replaced:
            # Undecodable bytes usually mean this is not really a text file
            confidence *= max(0.1, 1.0 - replaced / max(1, len(decoded)) * 10)
        return self._output(decoded, confidence, encoding=encoding, replaced_chars=replaced)
