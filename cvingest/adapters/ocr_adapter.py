"""
OCR adapter for image-only PDFs.

Rasterizes each page with PyMuPDF and runs tesseract over it. Slow, so it
sits behind the text-layer adapters and is disabled unless ENABLE_OCR is set.
"""

from __future__ import annotations

import io
from typing import Dict, List, Tuple

import fitz  # PyMuPDF
import pytesseract
from PIL import Image

from ..errors import AdapterDeclined, TransientAdapterError
from ..logging_utils import LOG
from ..models import SOURCE_OCR, AdapterOutput
from ..shared import UploadedDocument
from .base import TextAdapter


class TesseractOcrAdapter(TextAdapter):
    """Runs tesseract OCR over rasterized PDF pages."""

    source_tag = SOURCE_OCR
    base_confidence = 0.6

    @property
    def tesseract_config(self) -> str:
        parts = [f"--psm {int(self.options.get('page_seg_mode', 1))}"]
        whitelist = self.options.get("char_whitelist") or ""
        if whitelist:
            parts.append(f"-c tessedit_char_whitelist={whitelist}")
        return " ".join(parts)

    def extract(self, document: UploadedDocument) -> AdapterOutput:
        if not document.content:
            raise AdapterDeclined(self.name, "document is empty")
        try:
            doc = fitz.open(stream=document.content, filetype="pdf")
        except (fitz.FileDataError, ValueError) as e:
            raise AdapterDeclined(self.name, f"unreadable PDF: {e}") from e

        page_texts: List[str] = []
        confidences: List[float] = []
        try:
            for page in doc:
                text, conf = self._ocr_page(page)
                if text:
                    page_texts.append(text)
                    confidences.append(conf)
        finally:
            doc.close()

        mean_conf = sum(confidences) / len(confidences) if confidences else 0.0
        LOG.debug("%s: %d page(s) recognized, mean confidence %.2f", self.name, len(page_texts), mean_conf)
        # mean word confidence mapped onto [0.6, 0.9]
        return self._output("\n\n".join(page_texts), self.base_confidence + 0.3 * mean_conf,
                            pages=len(page_texts), ocr_confidence=mean_conf)

    def _ocr_page(self, page: "fitz.Page") -> Tuple[str, float]:
        zoom = float(self.options.get("zoom", 2.0))
        pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
        image = Image.open(io.BytesIO(pix.tobytes("png"))).convert("L")
        try:
            data = pytesseract.image_to_data(
                image,
                lang=self.options.get("language", "eng"),
                config=self.tesseract_config,
                output_type=pytesseract.Output.DICT,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise TransientAdapterError(self.name, "tesseract is not installed") from e
        except (pytesseract.TesseractError, RuntimeError) as e:
            raise TransientAdapterError(self.name, f"tesseract failed: {e}") from e

        # Rebuild lines from tesseract's block/paragraph/line numbering
        lines: Dict[Tuple[int, int, int], List[str]] = {}
        confs: List[float] = []
        for i, word in enumerate(data.get("text", [])):
            word = (word or "").strip()
            conf = float(data["conf"][i])
            if not word or conf < 0:
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(word)
            confs.append(conf)

        text = "\n".join(" ".join(words) for _, words in sorted(lines.items()))
        return text, (sum(confs) / len(confs) / 100.0) if confs else 0.0
