"""
Low-level DOCX / WordprocessingML helpers.

This module handles direct extraction of text from DOCX bytes:
- reading Word XML parts out of the ZIP container
- iterating header and body paragraphs
- converting Word runs into plain text

It contains no CV-specific logic.
"""

from __future__ import annotations

import io
import re
from typing import Iterator, List
from zipfile import BadZipFile, ZipFile

from lxml import etree

from ..shared import normalize_text_for_processing

XML_PARSER = etree.XMLParser(recover=True, huge_tree=True, resolve_entities=False)

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
DOCX_NS = {"w": W_NS}

DOCUMENT_PART = "word/document.xml"
_HEADER_PART_RE = re.compile(r"^word/header\d*\.xml$")


class DocxFormatError(ValueError):
    """The bytes are not a readable WordprocessingML package."""


def extract_text_from_w_p(p: etree._Element) -> str:
    parts: List[str] = []
    for node in p.iter():
        if not isinstance(node.tag, str):
            continue
        tag = etree.QName(node).localname
        if tag == "t" and node.text:
            parts.append(node.text)
        elif tag in ("noBreakHyphen", "softHyphen"):
            parts.append("-")
        elif tag in ("br", "cr"):
            parts.append("\n")
        elif tag == "tab":
            parts.append("\t")
    return normalize_text_for_processing("".join(parts)).strip()


def _iter_part_paragraphs(xml_bytes: bytes) -> Iterator[str]:
    root = etree.fromstring(xml_bytes, XML_PARSER)
    if root is None:
        return
    # Paragraphs nested inside text boxes are reached through their
    # enclosing paragraph; skip them here so text is not doubled.
    for p in root.iter(f"{{{W_NS}}}p"):
        if any(etree.QName(a).localname == "txbxContent" for a in p.iterancestors()):
            continue
        text = extract_text_from_w_p(p)
        if text:
            yield text


def iter_docx_paragraphs(content: bytes, include_headers: bool = True) -> Iterator[str]:
    """
    Yield the text of each non-empty paragraph: header parts first (in part
    name order), then the document body.
    """
    try:
        with ZipFile(io.BytesIO(content)) as z:
            names = z.namelist()
            if DOCUMENT_PART not in names:
                raise DocxFormatError(f"missing {DOCUMENT_PART}")
            header_parts = sorted(n for n in names if _HEADER_PART_RE.match(n)) if include_headers else []
            parts = [z.read(name) for name in header_parts + [DOCUMENT_PART]]
    except BadZipFile as e:
        raise DocxFormatError(f"not a ZIP container: {e}") from e

    for xml_bytes in parts:
        yield from _iter_part_paragraphs(xml_bytes)
