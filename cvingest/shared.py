"""
Shared models and text utilities.

Defines the uploaded-document value, the media-type allow-list and the text
normalization / pattern helpers used by adapters, the field extraction engine
and the vendor normalizer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterator, List, Optional

# ------------------------- Media types -------------------------

MEDIA_TYPE_TEXT = "text/plain"
MEDIA_TYPE_PDF = "application/pdf"
MEDIA_TYPE_DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

ALLOWED_MEDIA_TYPES: FrozenSet[str] = frozenset({MEDIA_TYPE_TEXT, MEDIA_TYPE_PDF, MEDIA_TYPE_DOCX})

_SUFFIX_MEDIA_TYPES: Dict[str, str] = {
    ".txt": MEDIA_TYPE_TEXT,
    ".text": MEDIA_TYPE_TEXT,
    ".pdf": MEDIA_TYPE_PDF,
    ".docx": MEDIA_TYPE_DOCX,
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".doc": "application/msword",
}


def normalize_media_type(media_type: Optional[str]) -> str:
    """Lower-case and strip parameters: 'Text/Plain; charset=utf-8' -> 'text/plain'."""
    if not media_type:
        return ""
    return media_type.split(";", 1)[0].strip().lower()


def guess_media_type(filename: str) -> str:
    return _SUFFIX_MEDIA_TYPES.get(Path(filename).suffix.lower(), "application/octet-stream")


# ------------------------- Models -------------------------

@dataclass(frozen=True)
class UploadedDocument:
    """Raw upload as received; never persisted by this package."""
    content: bytes
    media_type: str
    filename: str = ""

    @property
    def byte_length(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: Path, media_type: Optional[str] = None) -> "UploadedDocument":
        if not path.exists():
            raise FileNotFoundError(f"Document not found: {path}")
        if not path.is_file():
            raise ValueError(f"Path must be a file: {path}")
        return cls(
            content=path.read_bytes(),
            media_type=normalize_media_type(media_type) or guess_media_type(path.name),
            filename=path.name,
        )


# ------------------------- Text normalization -------------------------

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_BLANK_RUN_RE = re.compile(r"\n{3,}")
_INLINE_WS_RE = re.compile(r"[ \t]+")

_CHAR_FIXES = str.maketrans({
    "\u00A0": " ",   # NBSP
    "\u2007": " ",
    "\u202F": " ",
    "\u00AD": "-",   # soft hyphen from PDF line wrapping
    "\u200B": None,  # zero-width space
    "\uFEFF": None,
})


def normalize_text_for_processing(s: str) -> str:
    """Plain-text form of PDF/DOCX output: odd spaces and hyphens mapped, control characters dropped."""
    s = s.translate(_CHAR_FIXES).replace("\r\n", "\n").replace("\r", "\n")
    return _CONTROL_CHARS_RE.sub("", s)


def clean_extracted_text(text: Optional[str]) -> str:
    """
    Tidy adapter output while keeping line structure.

    Inline whitespace runs collapse to one space, each line is trimmed and
    runs of three or more newlines collapse to a single blank line.
    """
    if not text:
        return ""
    text = normalize_text_for_processing(text)
    lines = [_INLINE_WS_RE.sub(" ", ln).strip() for ln in text.split("\n")]
    text = "\n".join(lines)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


def non_empty_lines(text: str) -> List[str]:
    return [ln.strip() for ln in text.split("\n") if ln.strip()]


# ------------------------- Contact patterns -------------------------

EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

# Runs of digits, spaces, '+', '-', '(' and ')' at least 10 characters long.
# Spaces only (not newlines) so a match never spans two lines.
PHONE_RE = re.compile(r"[+(\d][\d +()\-]{9,}")

PHONE_MIN_DIGITS = 9
PHONE_MAX_DIGITS = 15


def _iter_phone_candidates(text: str) -> Iterator[str]:
    for m in PHONE_RE.finditer(text):
        candidate = m.group(0).strip().rstrip("-(").strip()
        digits = sum(ch.isdigit() for ch in candidate)
        if PHONE_MIN_DIGITS <= digits <= PHONE_MAX_DIGITS and len(candidate) >= 10:
            yield candidate


def find_phone(text: Optional[str]) -> str:
    """First phone-shaped run in text, or "" when there is none."""
    if not text:
        return ""
    return next(_iter_phone_candidates(text), "")


def find_email(text: Optional[str]) -> str:
    if not text:
        return ""
    m = EMAIL_RE.search(text)
    return m.group(0) if m else ""
