"""
DOCX text extraction adapter.
"""

from __future__ import annotations

from ..errors import AdapterDeclined
from ..models import SOURCE_DOCX, AdapterOutput
from ..shared import UploadedDocument
from .base import TextAdapter
from .docx_utils import DocxFormatError, iter_docx_paragraphs


class DocxTextAdapter(TextAdapter):
    """
    Extracts paragraph text from Word .docx files.

    Parses the document as a ZIP archive and reads WordprocessingML with lxml:
    header parts first (where many CV templates put the candidate name),
    then the body, one paragraph per line.
    """

    source_tag = SOURCE_DOCX
    base_confidence = 0.9

    def extract(self, document: UploadedDocument) -> AdapterOutput:
        if not document.content:
            raise AdapterDeclined(self.name, "document is empty")
        include_headers = bool(self.options.get("include_headers", True))
        try:
            paragraphs = list(iter_docx_paragraphs(document.content, include_headers=include_headers))
        except DocxFormatError as e:
            raise AdapterDeclined(self.name, f"unreadable DOCX: {e}") from e
        return self._output("\n".join(paragraphs), paragraphs=len(paragraphs))
