"""Tests for the built-in text extraction adapters."""

from unittest.mock import MagicMock, patch

import pytest
import pytesseract
from pypdf.errors import PdfReadError

from cvingest.adapters import (
    DocxTextAdapter,
    PlainTextAdapter,
    PyMuPdfTextAdapter,
    PypdfTextAdapter,
    TesseractOcrAdapter,
)
from cvingest.adapters.docx_utils import DocxFormatError, iter_docx_paragraphs
from cvingest.errors import AdapterDeclined, TransientAdapterError
from cvingest.models import SOURCE_DOCX, SOURCE_OCR, SOURCE_PDF, SOURCE_TEXT_FILE
from cvingest.shared import MEDIA_TYPE_DOCX, MEDIA_TYPE_PDF, MEDIA_TYPE_TEXT, UploadedDocument


def _doc(content: bytes, media_type: str = MEDIA_TYPE_PDF) -> UploadedDocument:
    return UploadedDocument(content=content, media_type=media_type, filename="cv")


class TestPlainTextAdapter:
    def test_decodes_utf8(self):
        out = PlainTextAdapter(name="text").extract(_doc("Zoë Smith\r\nEditor".encode("utf-8"), MEDIA_TYPE_TEXT))
        assert out.text == "Zoë Smith\nEditor"
        assert out.confidence == pytest.approx(0.95)
        assert PlainTextAdapter.source_tag == SOURCE_TEXT_FILE

    def test_strips_bom(self):
        out = PlainTextAdapter().extract(_doc(b"\xef\xbb\xbfJane Doe", MEDIA_TYPE_TEXT))
        assert out.text == "Jane Doe"

    def test_undecodable_bytes_lower_confidence(self):
        out = PlainTextAdapter().extract(_doc(b"Jane \xff\xfe Doe", MEDIA_TYPE_TEXT))
        assert out.metadata["replaced_chars"] == 2
        assert out.confidence < 0.95

    def test_empty_declined(self):
        with pytest.raises(AdapterDeclined):
            PlainTextAdapter(name="text").extract(_doc(b"", MEDIA_TYPE_TEXT))

    def test_whitespace_only_gives_zero_confidence(self):
        out = PlainTextAdapter().extract(_doc(b"   \n  ", MEDIA_TYPE_TEXT))
        assert out.text == ""
        assert out.confidence == 0.0


class TestDocxAdapter:
    def test_reads_body_paragraphs(self, make_docx):
        content = make_docx(["Jane Doe", "Senior Policy Manager", "", "Ministry of Example"])
        out = DocxTextAdapter(name="docx").extract(_doc(content, MEDIA_TYPE_DOCX))
        assert out.text == "Jane Doe\nSenior Policy Manager\nMinistry of Example"
        assert out.confidence == pytest.approx(0.9)
        assert out.metadata["paragraphs"] == 3
        assert DocxTextAdapter.source_tag == SOURCE_DOCX

    def test_header_parts_come_first(self, make_docx):
        content = make_docx(["Body line"], headers={"header1.xml": ["Jane Doe"]})
        out = DocxTextAdapter().extract(_doc(content, MEDIA_TYPE_DOCX))
        assert out.text.splitlines() == ["Jane Doe", "Body line"]

    def test_headers_can_be_excluded(self, make_docx):
        content = make_docx(["Body line"], headers={"header1.xml": ["Jane Doe"]})
        out = DocxTextAdapter(include_headers=False).extract(_doc(content, MEDIA_TYPE_DOCX))
        assert out.text == "Body line"

    def test_not_a_zip_declined(self):
        with pytest.raises(AdapterDeclined, match="unreadable DOCX"):
            DocxTextAdapter(name="docx").extract(_doc(b"plain bytes", MEDIA_TYPE_DOCX))

    def test_empty_declined(self):
        with pytest.raises(AdapterDeclined):
            DocxTextAdapter().extract(_doc(b"", MEDIA_TYPE_DOCX))

    def test_zip_without_document_part(self, tmp_path):
        import io
        import zipfile

        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as z:
            z.writestr("other.xml", "<x/>")
        with pytest.raises(DocxFormatError):
            list(iter_docx_paragraphs(buf.getvalue()))

    def test_runs_breaks_and_tabs(self):
        import io
        import zipfile

        from conftest import W_NS

        body = (
            f'<w:document xmlns:w="{W_NS}"><w:body><w:p>'
            "<w:r><w:t>Senior</w:t></w:r><w:r><w:tab/><w:t>Manager</w:t></w:r>"
            "<w:r><w:br/><w:t>Acme</w:t><w:noBreakHyphen/><w:t>Group</w:t></w:r>"
            "</w:p></w:body></w:document>"
        )
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as z:
            z.writestr("word/document.xml", body)
        assert list(iter_docx_paragraphs(buf.getvalue())) == ["Senior\tManager\nAcme-Group"]


class TestPypdfAdapter:
    def _reader(self, texts, encrypted=False):
        reader = MagicMock()
        reader.is_encrypted = encrypted
        pages = []
        for t in texts:
            page = MagicMock()
            page.extract_text.return_value = t
            pages.append(page)
        reader.pages = pages
        return reader

    def test_joins_pages_with_text(self):
        reader = self._reader(["Page one", "", "Page three"])
        with patch("cvingest.adapters.pdf_adapters.PdfReader", return_value=reader):
            out = PypdfTextAdapter(name="pdf-text").extract(_doc(b"%PDF"))
        assert out.text == "Page one\n\nPage three"
        assert out.metadata["pages"] == 3
        assert out.confidence == pytest.approx(0.85)
        assert PypdfTextAdapter.source_tag == SOURCE_PDF

    def test_encrypted_tries_empty_password(self):
        reader = self._reader(["Secret CV"], encrypted=True)
        with patch("cvingest.adapters.pdf_adapters.PdfReader", return_value=reader):
            PypdfTextAdapter().extract(_doc(b"%PDF"))
        reader.decrypt.assert_called_once_with("")

    def test_corrupt_pdf_declined(self):
        with patch("cvingest.adapters.pdf_adapters.PdfReader", side_effect=PdfReadError("EOF marker not found")):
            with pytest.raises(AdapterDeclined):
                PypdfTextAdapter(name="pdf-text").extract(_doc(b"garbage"))

    @pytest.mark.parametrize("error", [KeyError("/Root"), ValueError("bad xref"), TypeError("NoneType")])
    def test_malformed_object_tree_declined(self, error):
        reader = self._reader(["unused"])
        reader.pages[0].extract_text.side_effect = error
        with patch("cvingest.adapters.pdf_adapters.PdfReader", return_value=reader):
            with pytest.raises(AdapterDeclined, match="unreadable PDF"):
                PypdfTextAdapter(name="pdf-text").extract(_doc(b"%PDF"))

    def test_io_error_is_transient(self):
        with patch("cvingest.adapters.pdf_adapters.PdfReader", side_effect=OSError("read failed")):
            with pytest.raises(TransientAdapterError):
                PypdfTextAdapter(name="pdf-text").extract(_doc(b"%PDF"))

    def test_empty_declined(self):
        with pytest.raises(AdapterDeclined):
            PypdfTextAdapter().extract(_doc(b""))


def _fitz_page(text=""):
    page = MagicMock()
    page.get_text.return_value = text
    page.get_pixmap.return_value.tobytes.return_value = b"\x89PNG"
    return page


def _fitz_doc(page_texts, needs_pass=False):
    doc = MagicMock()
    doc.needs_pass = needs_pass
    pages = [_fitz_page(t) for t in page_texts]
    doc.__iter__.return_value = iter(pages)
    doc.page_count = len(pages)
    return doc


class TestPyMuPdfAdapter:
    def test_extracts_and_closes(self):
        doc = _fitz_doc(["Left column", "Right column"])
        with patch("cvingest.adapters.pdf_adapters.fitz.open", return_value=doc) as fopen:
            out = PyMuPdfTextAdapter(name="pdf-layout").extract(_doc(b"%PDF"))
        fopen.assert_called_once_with(stream=b"%PDF", filetype="pdf")
        assert out.text == "Left column\n\nRight column"
        assert out.confidence == pytest.approx(0.8)
        doc.close.assert_called_once()

    def test_password_protected_authenticates(self):
        doc = _fitz_doc(["text"], needs_pass=True)
        with patch("cvingest.adapters.pdf_adapters.fitz.open", return_value=doc):
            PyMuPdfTextAdapter().extract(_doc(b"%PDF"))
        doc.authenticate.assert_called_once_with("")

    def test_unreadable_declined(self):
        with patch("cvingest.adapters.pdf_adapters.fitz.open", side_effect=ValueError("bad stream")):
            with pytest.raises(AdapterDeclined):
                PyMuPdfTextAdapter(name="pdf-layout").extract(_doc(b"garbage"))

    def test_engine_failure_is_transient_and_closes(self):
        doc = _fitz_doc([])
        doc.__iter__.side_effect = RuntimeError("mupdf crashed")
        with patch("cvingest.adapters.pdf_adapters.fitz.open", return_value=doc):
            with pytest.raises(TransientAdapterError):
                PyMuPdfTextAdapter(name="pdf-layout").extract(_doc(b"%PDF"))
        doc.close.assert_called_once()


class TestOcrAdapter:
    def test_tesseract_config(self):
        adapter = TesseractOcrAdapter(name="ocr", page_seg_mode=6, char_whitelist="abc")
        assert adapter.tesseract_config == "--psm 6 -c tessedit_char_whitelist=abc"
        assert TesseractOcrAdapter().tesseract_config == "--psm 1"

    def test_extract_combines_pages(self):
        doc = _fitz_doc(["", ""])
        adapter = TesseractOcrAdapter(name="ocr")
        with patch("cvingest.adapters.ocr_adapter.fitz.open", return_value=doc), \
                patch.object(TesseractOcrAdapter, "_ocr_page", side_effect=[("John Smith", 0.9), ("Manager", 0.7)]):
            out = adapter.extract(_doc(b"%PDF"))
        assert out.text == "John Smith\n\nManager"
        assert out.confidence == pytest.approx(0.6 + 0.3 * 0.8)
        assert out.metadata["pages"] == 2
        assert TesseractOcrAdapter.source_tag == SOURCE_OCR
        doc.close.assert_called_once()

    def test_ocr_page_rebuilds_lines(self):
        data = {
            "text": ["", "John", "Smith", "Manager"],
            "conf": ["-1", "90", "80", "70"],
            "block_num": [0, 1, 1, 1],
            "par_num": [0, 1, 1, 1],
            "line_num": [0, 1, 1, 2],
        }
        adapter = TesseractOcrAdapter(name="ocr", language="deu")
        with patch("cvingest.adapters.ocr_adapter.Image.open"), \
                patch("cvingest.adapters.ocr_adapter.pytesseract.image_to_data", return_value=data) as itd:
            text, conf = adapter._ocr_page(_fitz_page())
        assert text == "John Smith\nManager"
        assert conf == pytest.approx(0.8)
        assert itd.call_args.kwargs["lang"] == "deu"
        assert itd.call_args.kwargs["config"] == "--psm 1"

    def test_missing_tesseract_is_transient(self):
        adapter = TesseractOcrAdapter(name="ocr")
        with patch("cvingest.adapters.ocr_adapter.Image.open"), \
                patch("cvingest.adapters.ocr_adapter.pytesseract.image_to_data",
                      side_effect=pytesseract.TesseractNotFoundError()):
            with pytest.raises(TransientAdapterError, match="not installed"):
                adapter._ocr_page(_fitz_page())

    def test_unreadable_pdf_declined(self):
        with patch("cvingest.adapters.ocr_adapter.fitz.open", side_effect=ValueError("bad")):
            with pytest.raises(AdapterDeclined):
                TesseractOcrAdapter(name="ocr").extract(_doc(b"garbage"))
