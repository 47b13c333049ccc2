"""
PDF text-layer adapters.

Two independent strategies over the embedded text layer: pypdf first,
PyMuPDF second. Neither sees text in scanned pages; that is left to OCR.
"""

from __future__ import annotations

import io
from typing import List

import fitz  # PyMuPDF
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from ..errors import AdapterDeclined, TransientAdapterError
from ..logging_utils import LOG
from ..models import SOURCE_PDF, AdapterOutput
from ..shared import UploadedDocument
from .base import TextAdapter


class PypdfTextAdapter(TextAdapter):
    """Extracts the PDF text layer with pypdf."""

    source_tag = SOURCE_PDF
    base_confidence = 0.85

    def extract(self, document: UploadedDocument) -> AdapterOutput:
        if not document.content:
            raise AdapterDeclined(self.name, "document is empty")
        try:
            reader = PdfReader(io.BytesIO(document.content))
            if reader.is_encrypted:
                # Many "locked" CVs open with an empty password
                reader.decrypt("")
            pages: List[str] = []
            for page in reader.pages:
                text = page.extract_text() or ""
                if text.strip():
                    pages.append(text)
        except (PdfReadError, ValueError, KeyError, TypeError) as e:
            # pypdf surfaces broken object trees as plain lookup/type errors
            raise AdapterDeclined(self.name, f"unreadable PDF: {e}") from e
        except OSError as e:
            raise TransientAdapterError(self.name, f"I/O error: {e}") from e

        LOG.debug("%s: %d page(s) with text", self.name, len(pages))
        return self._output("\n\n".join(pages), pages=len(reader.pages))


class PyMuPdfTextAdapter(TextAdapter):
    """Extracts the PDF text layer with PyMuPDF (better with multi-column layouts)."""

    source_tag = SOURCE_PDF
    base_confidence = 0.8

    def extract(self, document: UploadedDocument) -> AdapterOutput:
        if not document.content:
            raise AdapterDeclined(self.name, "document is empty")
        try:
            doc = fitz.open(stream=document.content, filetype="pdf")
        except (fitz.FileDataError, ValueError) as e:
            raise AdapterDeclined(self.name, f"unreadable PDF: {e}") from e
        except RuntimeError as e:
            raise TransientAdapterError(self.name, f"PyMuPDF failure: {e}") from e

        try:
            if doc.needs_pass:
                doc.authenticate("")
            pages = [page.get_text("text") or "" for page in doc]
            page_count = doc.page_count
        except RuntimeError as e:
            raise TransientAdapterError(self.name, f"PyMuPDF failure: {e}") from e
        finally:
            doc.close()

        return self._output("\n\n".join(p for p in pages if p.strip()), pages=page_count)
