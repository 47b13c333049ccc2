"""
Data models for the ingestion pipeline.

Adapter descriptors, per-attempt extraction records, the orchestrator outcome
and the canonical ParsedCandidate value returned to callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from .errors import ErrorCode

# Provenance tags
SOURCE_TEXT_FILE = "text-file"
SOURCE_PDF = "pdf"
SOURCE_DOCX = "docx"
SOURCE_OCR = "ocr"
SOURCE_VENDOR = "vendor"
SOURCE_ERROR = "error"

# Attempt statuses
STATUS_OK = "ok"
STATUS_WEAK = "weak"
STATUS_FAILED = "failed"
STATUS_DECLINED = "declined"
STATUS_SKIPPED = "skipped"


@dataclass(frozen=True)
class AdapterDescriptor:
    """Configuration for one adapter, immutable for the process lifetime."""
    name: str
    priority: int
    enabled: bool
    media_types: FrozenSet[str]
    options: Mapping[str, Any] = field(default_factory=dict)

    def supports(self, media_type: str) -> bool:
        return media_type in self.media_types


@dataclass
class AdapterOutput:
    """What an adapter hands back: text plus its own confidence in [0, 1]."""
    text: str
    confidence: float
    payload: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ExtractionAttempt:
    """Result of invoking one adapter (after retries) within one request."""
    adapter: str
    source_tag: str
    status: str
    text: str = ""
    confidence: float = 0.0
    elapsed_s: float = 0.0
    tries: int = 0
    error: str = ""
    payload: Optional[Dict[str, Any]] = None

    @property
    def success(self) -> bool:
        return self.status in (STATUS_OK, STATUS_WEAK)


@dataclass
class ExtractionOutcome:
    """Text chosen by the orchestrator, with provenance and all attempts made."""
    text: str
    confidence: float
    source_tag: str
    adapter: str
    weak: bool = False
    payload: Optional[Dict[str, Any]] = None
    attempts: List[ExtractionAttempt] = field(default_factory=list)


@dataclass(frozen=True)
class SkillFlags:
    communications: bool = False
    campaigns: bool = False
    policy: bool = False
    public_affairs: bool = False
    # distinct keyword hits per skill, used for level output
    hits: Mapping[str, int] = field(default_factory=dict, compare=False)

    def as_dict(self) -> Dict[str, bool]:
        return {
            "communications": self.communications,
            "campaigns": self.campaigns,
            "policy": self.policy,
            "publicAffairs": self.public_affairs,
        }

    def as_levels(self) -> Dict[str, int]:
        """0 when the skill is absent, else 1 + distinct keyword hits, capped at 5."""
        levels: Dict[str, int] = {}
        for name, present in self.as_dict().items():
            levels[name] = min(5, 1 + int(self.hits.get(name, 0))) if present else 0
        return levels

    def any(self) -> bool:
        return any(self.as_dict().values())


@dataclass(frozen=True)
class ParsedCandidate:
    """Canonical structured candidate record."""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    current_title: str = ""
    current_employer: str = ""
    skills: SkillFlags = field(default_factory=SkillFlags)
    tags: List[str] = field(default_factory=list)
    notes: str = ""
    source: str = ""  # set by the result assembler
    confidence: float = 0.0

    @property
    def is_error(self) -> bool:
        return self.source == SOURCE_ERROR

    def contact_fields(self) -> Dict[str, str]:
        """The five fields the completeness confidence is computed over."""
        return {
            "name": " ".join(p for p in (self.first_name, self.last_name) if p),
            "email": self.email,
            "phone": self.phone,
            "title": self.current_title,
            "employer": self.current_employer,
        }

    def with_provenance(self, source: str, confidence: float) -> "ParsedCandidate":
        return replace(self, source=source, confidence=confidence)

    @classmethod
    def error(cls, confidence: float = 0.0) -> "ParsedCandidate":
        return cls(source=SOURCE_ERROR, confidence=confidence)

    def as_dict(self, skill_levels: bool = False) -> Dict[str, Any]:
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "currentTitle": self.current_title,
            "currentEmployer": self.current_employer,
            "skills": self.skills.as_levels() if skill_levels else self.skills.as_dict(),
            "tags": list(self.tags),
            "notes": self.notes,
            "source": self.source,
            "confidence": round(self.confidence, 4),
        }


@dataclass
class ParseResponse:
    """JSON-serializable envelope handed back to callers of parse_upload()."""
    success: bool
    candidate: Optional[ParsedCandidate] = None
    error_code: Optional[ErrorCode] = None
    message: str = ""
    details: str = ""

    def __post_init__(self) -> None:
        if self.success and self.candidate is None:
            raise ValueError("a successful ParseResponse needs a candidate")
        if not self.success and self.error_code is None:
            raise ValueError("a failed ParseResponse needs an error_code")

    @property
    def http_status(self) -> int:
        if self.success:
            return 200
        return self.error_code.http_status

    def as_dict(self, skill_levels: bool = False) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "candidate": self.candidate.as_dict(skill_levels=skill_levels)}
        code = self.error_code
        return {
            "success": False,
            "error": {
                "code": code.value,
                "message": self.message or code.default_message,
                "details": self.details,
            },
        }
