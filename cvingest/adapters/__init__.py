"""
Text extraction adapters.

Each adapter is one strategy for turning an uploaded document into text.
"""

from .adapter_registry import (
    AdapterRegistry,
    get_adapter,
    list_registered_adapters,
    register_adapter,
    unregister_adapter,
)
from .base import TextAdapter
from .docx_adapter import DocxTextAdapter
from .ocr_adapter import TesseractOcrAdapter
from .pdf_adapters import PyMuPdfTextAdapter, PypdfTextAdapter
from .plain_text_adapter import PlainTextAdapter
from .vendor_adapter import VendorParserAdapter

__all__ = [
    "AdapterRegistry",
    "TextAdapter",
    "PlainTextAdapter",
    "PypdfTextAdapter",
    "PyMuPdfTextAdapter",
    "DocxTextAdapter",
    "TesseractOcrAdapter",
    "VendorParserAdapter",
    "register_adapter",
    "get_adapter",
    "list_registered_adapters",
    "unregister_adapter",
]
